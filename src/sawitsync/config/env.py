"""Typed readers over ``os.environ``; blank values count as unset."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


def _read(name: str) -> str | None:
    raw = os.environ.get(name, "").strip()
    return raw or None


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Read every name at once so one error lists all that are missing."""

    found = {name: _read(name) for name in names}
    absent = sorted(name for name, value in found.items() if value is None)
    if absent:
        raise MissingConfigurationError(f"Missing configuration for: {', '.join(absent)}")
    return {name: os.environ[name] for name in names}


def _number[N: (int, float)](
    name: str,
    convert: Callable[[str], N],
    kind: str,
    minimum: N,
) -> N | None:
    raw = _read(name)
    if raw is None:
        return None
    try:
        parsed = convert(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be {kind}, got {raw!r}") from exc
    if parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def env_int(name: str, default: int, *, minimum: int = 1) -> int:
    parsed = _number(name, int, "an integer", minimum)
    return default if parsed is None else parsed


def env_optional_float(name: str, *, minimum: float = 0.0) -> float | None:
    return _number(name, float, "a number", minimum)


def env_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    parsed = env_optional_float(name, minimum=minimum)
    return default if parsed is None else parsed


def env_str(name: str, default: str | None = None) -> str | None:
    return _read(name) or default
