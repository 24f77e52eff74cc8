"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server settings in one dataclass, with defaults that work for local
development.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION PRIORITY                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m relayhttp --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m relayhttp                        │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

validate() runs at start-up so a bad value fails immediately instead of on
the first request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

        Development:
            ServerConfig(log_level="DEBUG")

        Container:
            ServerConfig(host="0.0.0.0", port=80, workers=16)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind to. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 asks the OS for a free port (used by tests)."""

    backlog: int = 128
    """Maximum number of connections waiting in the kernel accept queue."""

    buffer_size: int = 2048
    """
    Upper bound for one request, in bytes.

    Each connection reads until the end of the headers, until this many
    bytes arrived, or until the client stops sending. Whatever followed the
    headers in that read is the request body.
    """

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for each client connection."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKER POOL
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 4
    """Number of worker threads handling connections."""

    queue_size: int = 64
    """
    Connections that may wait for a free worker. Beyond that, new
    connections get 503 Service Unavailable.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Format of the log HTTPServer.access_log() installs: "text" or "json"."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "relayhttp/1.0"
    """Shown in the start-up banner."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

            HTTP_HOST        (default: 127.0.0.1)
            HTTP_PORT        (default: 8080)
            HTTP_WORKERS     (default: 4)
            HTTP_TIMEOUT     (default: 30)
            HTTP_LOG_LEVEL   (default: INFO)
            HTTP_LOG_FORMAT  (default: text)

        Unset variables keep the dataclass defaults.
        """
        defaults = cls()
        return cls(
            host=os.getenv("HTTP_HOST", defaults.host),
            port=int(os.getenv("HTTP_PORT", str(defaults.port))),
            workers=int(os.getenv("HTTP_WORKERS", str(defaults.workers))),
            timeout=float(os.getenv("HTTP_TIMEOUT", str(defaults.timeout))),
            log_level=os.getenv("HTTP_LOG_LEVEL", defaults.log_level).upper(),
            log_format=os.getenv("HTTP_LOG_FORMAT", defaults.log_format).lower(),
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. "
                f"Must be one of {', '.join(LOG_LEVELS)}."
            )

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Must be text or json.")
