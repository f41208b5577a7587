"""Global configuration for foamview decoders and geometry preparation.

This module provides a package-wide configuration surface for the tunables
of the decode pipeline (header scan window, binary count lookahead) and of
the GPU buffer preparation (auto-zoom constants, fallback color). Values are
seeded from ``FOAMVIEW_*`` environment variables and can be overridden
programmatically or temporarily with the `use` context manager. It also
owns the package log level.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import contextlib
import logging
import os
from typing import Any, ContextManager, Iterator, Tuple


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("foamview.config")
_PACKAGE_LOGGER = logging.getLogger("foamview")


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Parse a logging level string or int into a `logging` level constant.

    Args:
        val: The desired level (e.g., "DEBUG", 10). May be None.
        default: Fallback level if `val` cannot be parsed.

    Returns:
        An integer logging level (e.g., logging.DEBUG).
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = getattr(logging, str(val).strip().upper(), None)
    if isinstance(lvl, int):
        return lvl
    return default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the package logger level programmatically.

    Args:
        level: A standard logging level name or integer.
    """
    _PACKAGE_LOGGER.setLevel(_parse_log_level(level))


# Default level can be overridden by env.
set_log_level(os.getenv("FOAMVIEW_LOGLEVEL", "WARNING"))


# -----------------------------------------------------------------------------
# Env helpers
# -----------------------------------------------------------------------------
def bool_env(varname: str, default: bool) -> bool:
    """Read an environment variable and interpret it as a boolean.

    True values: 'y', 'yes', 't', 'true', 'on', '1'.
    False values: 'n', 'no', 'f', 'false', 'off', '0'.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        A boolean value parsed from the environment.

    Raises:
        ValueError: If the variable holds an unrecognized truth value.
    """
    val = os.getenv(varname, str(default))
    val = val.lower()
    if val in ("y", "yes", "t", "true", "on", "1"):
        return True
    if val in ("n", "no", "f", "false", "off", "0"):
        return False
    raise ValueError(f"invalid truth value {val!r} for environment {varname!r}")


def int_env(varname: str, default: int) -> int:
    """Read an environment variable and interpret it as an integer.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        The integer value parsed from the environment.
    """
    return int(os.getenv(varname, str(default)))


def float_env(varname: str, default: float) -> float:
    """Read an environment variable and interpret it as a float."""
    return float(os.getenv(varname, str(default)))


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Settings:
    """Tunables of the decode and geometry pipeline.

    Attributes:
        header_scan_bytes: Size of the window searched for the ``FoamFile``
            header and the ``format`` entry.
        count_lookahead_bytes: How far past the header the binary decoders
            look for the ``(`` that opens a payload.
        zoom_scale: Numerator of the auto-zoom factor (``scale / extent``).
        fallback_zoom: Auto-zoom used when the mesh has no spatial extent.
        fallback_color: RGBA color given to every vertex without field data.
        warn_on_face_mismatch: Log faces whose declared point count differs
            from the parsed one.
    """

    header_scan_bytes: int = 4096
    count_lookahead_bytes: int = 512
    zoom_scale: float = 200.0
    fallback_zoom: float = 500.0
    fallback_color: Tuple[float, float, float, float] = (0.5, 0.7, 1.0, 1.0)
    warn_on_face_mismatch: bool = True

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``FOAMVIEW_*`` environment variables."""
        base = cls()
        return cls(
            header_scan_bytes=int_env(
                "FOAMVIEW_HEADER_SCAN_BYTES", base.header_scan_bytes
            ),
            count_lookahead_bytes=int_env(
                "FOAMVIEW_COUNT_LOOKAHEAD_BYTES", base.count_lookahead_bytes
            ),
            zoom_scale=float_env("FOAMVIEW_ZOOM_SCALE", base.zoom_scale),
            fallback_zoom=float_env("FOAMVIEW_FALLBACK_ZOOM", base.fallback_zoom),
            warn_on_face_mismatch=bool_env(
                "FOAMVIEW_WARN_FACE_MISMATCH", base.warn_on_face_mismatch
            ),
        )


def _validate(settings: Settings) -> Settings:
    """Reject settings that would make the decoders misbehave.

    Raises:
        ValueError: If a window size is not positive or a zoom constant is
            not a positive number.
    """
    if settings.header_scan_bytes <= 0:
        raise ValueError("header_scan_bytes must be > 0")
    if settings.count_lookahead_bytes <= 0:
        raise ValueError("count_lookahead_bytes must be > 0")
    if not settings.zoom_scale > 0 or not settings.fallback_zoom > 0:
        raise ValueError("zoom constants must be > 0")
    if len(settings.fallback_color) != 4:
        raise ValueError("fallback_color must be an RGBA 4-tuple")
    return settings


# -----------------------------------------------------------------------------
# Config singleton
# -----------------------------------------------------------------------------
class Config:
    """Global configuration for foamview.

    Holds the active `Settings`; decoders read them at call time so a
    reconfiguration applies to every subsequent decode.
    """

    def __init__(self) -> None:
        """Initialize config using environment defaults."""
        self._settings: Settings = _validate(Settings.from_env())
        _LOGGER.debug("Config initialized: %s", self._settings)

    @property
    def settings(self) -> Settings:
        """Return the active settings."""
        return self._settings

    def configure(self, **overrides: Any) -> Config:
        """Replace selected settings.

        Args:
            **overrides: Field names of `Settings` and their new values.

        Returns:
            The `Config` instance (for chaining).

        Raises:
            TypeError: If an override names an unknown setting.
        """
        known = {f.name for f in fields(Settings)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown setting(s): {sorted(unknown)}")
        self._settings = _validate(replace(self._settings, **overrides))
        _LOGGER.info("Reconfigured: %s", overrides)
        return self

    def reset(self) -> Config:
        """Restore the environment defaults."""
        self._settings = _validate(Settings.from_env())
        return self

    @contextlib.contextmanager
    def use(self, **overrides: Any) -> Iterator[Settings]:
        """Temporarily override settings within a context manager.

        Args:
            **overrides: Field names of `Settings` and their temporary values.

        Yields:
            The temporary settings. Restores the previous ones on exit.
        """
        prev = self._settings
        try:
            self.configure(**overrides)
            yield self._settings
        finally:
            self._settings = prev
            _LOGGER.debug("Restored previous settings")


# Singleton & forwards
config = Config()


def get_settings() -> Settings:
    """Return the active settings (module-level)."""
    return config.settings


def configure(**overrides: Any) -> Config:
    """Replace selected settings (module-level)."""
    return config.configure(**overrides)


def use(**overrides: Any) -> ContextManager[Settings]:
    """Temporarily override settings within a context manager (module-level)."""
    return config.use(**overrides)
