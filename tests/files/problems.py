def lonely(nobody):
    return nobody  # pragma: no cover


def ping(pong):
    return pong  # pragma: no cover


def pong(ping):
    return ping  # pragma: no cover
