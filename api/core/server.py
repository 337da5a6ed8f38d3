"""
Server bootstrap: bind a listening socket, stepping to the next port while
the requested one is taken, then hand the socket to uvicorn.
"""

from __future__ import annotations

import errno
import logging
import socket

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)


class PortBindError(RuntimeError):
    pass


def _bind(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(socket.SOMAXCONN)
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def bind_first_free_port(host: str, port: int, *, max_attempts: int = 100) -> socket.socket:
    """
    Bind `host:port`, trying port+1, port+2, ... while the address is in use.

    Raises PortBindError after `max_attempts` ports or on any other bind error.
    """
    for candidate in range(port, port + max_attempts):
        try:
            return _bind(host, candidate)
        except OSError as e:
            if e.errno != errno.EADDRINUSE:
                raise PortBindError(f"Cannot bind {host}:{candidate}: {e}") from e
            logger.warning("Port %s is already in use, trying the next one...", candidate)
    raise PortBindError(f"No free port in range {port}-{port + max_attempts - 1}.")


def run(app: FastAPI, *, host: str, port: int, max_attempts: int = 100, log_level: str = "info") -> None:
    sock = bind_first_free_port(host, port, max_attempts=max_attempts)
    bound_port = sock.getsockname()[1]
    logger.info("API + static listening on %s:%s", host, bound_port)

    config = uvicorn.Config(app, log_level=log_level.lower(), log_config=None)
    server = uvicorn.Server(config)
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()
