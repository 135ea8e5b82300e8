from opentelemetry import metrics

meter: metrics.Meter = metrics.get_meter("wirework")

MODULES_REGISTERED = meter.create_counter(
    "wirework_modules_registered",
    description="How many modules have been registered with a container",
    unit="1",
)

MODULES_IGNORED = meter.create_counter(
    "wirework_modules_ignored",
    description="How many registrations were ignored in favor of a mock module",
    unit="1",
)

MODULES_RESOLVED = meter.create_counter(
    "wirework_modules_resolved",
    description="How many modules have had their define function run to completion",
    unit="1",
)

RESOLUTION_FAILURES = meter.create_counter(
    "wirework_resolution_failures",
    description="How many module resolutions have failed",
    unit="1",
)

RESOLUTIONS_RUNNING = meter.create_up_down_counter(
    "wirework_resolutions_running",
    description="How many modules are currently being resolved",
    unit="1",
)

CACHE_SIZE = meter.create_gauge(
    "wirework_cache_size",
    description="Size of internal wirework caches",
    unit="1",
)
