"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import InvalidConfigurationValueError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(f"Missing configuration for: {missing_list}")

    return values


def require_env_var(name: str) -> str:
    """Return a required environment variable by name."""

    return require_env_vars([name])[name]


def env_float(name: str, default: float, *, minimum: float, maximum: float | None = None) -> float:
    """Read an optional float override, validating its range."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise InvalidConfigurationValueError(name, raw, "not a number") from exc
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        raise InvalidConfigurationValueError(name, raw, f"must be {bounds}")
    return value


def env_int(name: str, default: int, *, minimum: int) -> int:
    """Read an optional integer override, validating its lower bound."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidConfigurationValueError(name, raw, "not an integer") from exc
    if value < minimum:
        raise InvalidConfigurationValueError(name, raw, f"must be >= {minimum}")
    return value


def env_flag(name: str, *, default: bool = False) -> bool:
    """Read an optional on/off switch (``1``/``true``/``yes`` or ``0``/``false``/``no``)."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().casefold()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise InvalidConfigurationValueError(name, raw, "expected a yes/no value")
