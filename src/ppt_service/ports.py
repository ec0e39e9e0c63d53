import socket

from loguru import logger

from .errors import PortUnavailableError

MAX_PORT = 65535


def is_port_available(port: int, host: str = "0.0.0.0") -> bool:
    """Try to bind a transient listener on ``host:port`` and release it at once."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
            sock.listen(1)
        except OSError:
            return False
    return True


def find_available_port(preferred: int, *, host: str = "0.0.0.0", max_attempts: int = 1000) -> int:
    """Return the first bindable port at or above ``preferred``.

    Probes sequentially upward. Gives up after ``max_attempts`` probes or when
    the port range is exhausted, raising PortUnavailableError.
    """
    if not 0 <= preferred <= MAX_PORT:
        raise ValueError(f"port must be between 0 and {MAX_PORT}, got {preferred}")
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    port = preferred
    for _ in range(max_attempts):
        if is_port_available(port, host):
            return port
        if port >= MAX_PORT:
            break
        logger.info("Port {} is in use, trying {}", port, port + 1)
        port += 1
    raise PortUnavailableError(
        f"no free port in {preferred}-{port} on {host} after {port - preferred + 1} attempts"
    )
