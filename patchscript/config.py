from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, TypedDict, cast

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_ADDR = "127.0.0.1:0"
DEFAULT_REMOTE_ADDR = "127.0.0.1:5050"

DEFAULT_PROCESSORS: tuple[str, ...] = (
    "SineOscillator",
    "SawOscillator",
    "BlSawOscillator",
    "SquareOscillator",
    "Adsr",
    "PeakLimiter",
    "Metro",
)


class SessionConfig(TypedDict, total=False):
    """Configuration for a :class:`~patchscript.session.Session`.

    Every key is optional; :func:`resolve_session_config` fills in defaults.
    """

    local_addr: str
    """Local ``host:port`` to bind the datagram socket to (port 0 picks one)."""

    remote_addr: str
    """``host:port`` of the remote graph server."""

    processors: list[str]
    """Processor catalogue exposed to scripts as snake_case callables."""

    sparse_arguments: bool
    """If True, ``None`` arguments to procedures leave that input unconnected."""

    typed_constants: bool
    """If True, booleans and strings become constant nodes instead of errors."""

    mixer: bool
    """Expose the ``mixer`` object to scripts."""

    request_timeout: float | None
    """Seconds to wait for a response before failing the transport (None waits forever)."""


def default_session_config() -> SessionConfig:
    return SessionConfig(
        local_addr=DEFAULT_LOCAL_ADDR,
        remote_addr=os.environ.get("PATCHSCRIPT_REMOTE_ADDR", DEFAULT_REMOTE_ADDR),
        processors=list(DEFAULT_PROCESSORS),
        sparse_arguments=True,
        typed_constants=True,
        mixer=True,
        request_timeout=None,
    )


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6host]:port``) into a socket address tuple."""
    if not isinstance(address, str) or ":" not in address:
        raise ValueError(f"Address must look like 'host:port', got {address!r}")
    host, _, port_text = address.rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        raise ValueError(f"Address {address!r} has no host")
    try:
        port = int(port_text)
    except ValueError as e:
        raise ValueError(f"Address {address!r} has a non-numeric port") from e
    if not 0 <= port <= 65535:
        raise ValueError(f"Address {address!r} has an out-of-range port")
    return host, port


def resolve_session_config(config: SessionConfig | None = None, **overrides: Any) -> SessionConfig:
    """Merge ``config`` and ``overrides`` over the defaults and validate the result."""
    resolved = default_session_config()
    unknown = set(config or {}) | set(overrides)
    unknown -= set(SessionConfig.__annotations__)
    if unknown:
        raise ValueError(f"Unknown session config keys: {sorted(unknown)}")
    resolved.update(config or {})
    resolved.update(cast(SessionConfig, {k: v for k, v in overrides.items() if v is not None}))

    parse_address(resolved["local_addr"])
    parse_address(resolved["remote_addr"])

    processors = resolved["processors"]
    if isinstance(processors, str) or not all(isinstance(p, str) and p for p in processors):
        raise ValueError("processors must be a list of non-empty processor names")
    resolved["processors"] = list(processors)

    timeout = resolved["request_timeout"]
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ValueError(f"request_timeout must be a positive number or None, got {timeout!r}")

    for flag in ("sparse_arguments", "typed_constants", "mixer"):
        if not isinstance(resolved[flag], bool):  # type: ignore[literal-required]
            raise ValueError(f"{flag} must be a boolean")
    return resolved


def load_session_config(path: str | Path) -> SessionConfig:
    """Read a YAML session config file.

    The file holds a mapping with any of the :class:`SessionConfig` keys::

        remote_addr: 192.168.1.20:5050
        processors: [SineOscillator, Adsr]
        sparse_arguments: false
    """
    import yaml

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Session config {path} must contain a mapping, got {type(data).__name__}")
    logger.debug("[patchscript][Config] Loaded %s keys from %s", len(data), path)
    return resolve_session_config(cast(SessionConfig, data))
