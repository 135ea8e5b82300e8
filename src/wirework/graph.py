from typing import Iterable, Mapping, Sequence


def render_graph(
    graph: Mapping[str, Sequence[str]],
    exclude: Iterable[str] | None = None,
) -> str:
    """Render a module graph in the DOT language, one module per line.

    Modules are sorted by name so that the output only changes when the
    graph does.  Dependencies named in ``exclude`` are left off every edge
    list.
    """
    excluded = frozenset(exclude or ())

    lines = ["digraph DI {"]
    for name in sorted(graph):
        dependencies = [
            dependency for dependency in graph[name] if dependency not in excluded
        ]
        lines.append(f"  {name} -> {{ {' '.join(dependencies)} }}")
    lines.append("}")

    return "\n".join(lines) + "\n"
