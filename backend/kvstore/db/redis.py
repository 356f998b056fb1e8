"""
Redis Connection Module

Builds Redis clients for the cache store from either a ``redis://`` URL or a
bare ``host:port`` address.
"""

import logging
import warnings
from typing import Any
from urllib.parse import urlparse

from redis.asyncio import Redis

from kvstore.common.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "redis://127.0.0.1:6379"
DEFAULT_PORT = 6379


def _check_redis_security(redis_url: str, has_password: bool) -> None:
    """
    Check Redis connection security.

    Warns if the connection has no password and is not a localhost connection.
    """
    parsed = urlparse(redis_url if "://" in redis_url else f"redis://{redis_url}")

    # Check if connecting to localhost
    is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")

    if not has_password and not is_localhost:
        warnings.warn(
            "SECURITY WARNING: Redis connection has no password and is not connecting to localhost. "
            "This is insecure for production environments. "
            "Enable auth with a password or use the format: redis://:password@host:port/db",
            UserWarning,
            stacklevel=3,
        )
        logger.warning(
            "Redis connection without password to non-localhost host detected. "
            "Consider adding password authentication for production."
        )


def _split_host_port(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, DEFAULT_PORT
    try:
        return host or "127.0.0.1", int(port)
    except ValueError as e:
        raise ConfigurationError(
            message=f"Invalid Redis address: {address}",
            details={"address": address},
        ) from e


def create_redis_client(
    address: str,
    auth: bool = False,
    password: str = "",
    **kwargs: Any,
) -> Redis:
    """
    Create an async Redis client

    Responses are kept as bytes since record values are opaque.

    Args:
        address: ``redis://`` / ``rediss://`` / ``unix://`` URL or ``host:port``
        auth: Whether ``password`` overrides the address's password
        password: Password used when ``auth`` is set
        **kwargs: Extra Redis client arguments

    Returns:
        Redis: Client (not yet connected)

    Raises:
        ConfigurationError: Malformed address
    """
    try:
        client = Redis.from_url(address, **kwargs)
        has_password = bool(urlparse(address).password)
    except ValueError:
        # Not a URL, accept the plain host:port form
        host, port = _split_host_port(address)
        client = Redis(host=host, port=port, **kwargs)
        has_password = False

    if auth:
        # Options parsed from a URL take priority over keyword arguments
        client.connection_pool.connection_kwargs["password"] = password
        has_password = bool(password)

    _check_redis_security(address, has_password)
    return client
