"""Global configuration for lbmesh operator assembly.

This module provides a package-wide configuration surface for the defaults
used by the mesh-level drivers (Laplacian weighting scheme, worker count,
degeneracy tolerance, post-construction verification) without changing the
public call signatures. Defaults come from the environment and can be
changed at runtime with `configure` or temporarily with the `use` context
manager.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import contextlib
import logging
import os
from typing import Any, ContextManager, Iterator, Optional


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("lbmesh.config")
_PACKAGE_LOGGER = logging.getLogger("lbmesh")


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
set_log_level(os.getenv("LBMESH_LOGLEVEL", "WARNING"))


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
    """
    val = os.getenv(varname, str(default))
    val = val.lower()
    if val in ("y", "yes", "t", "true", "on", "1"):
        return True
    if val in ("n", "no", "f", "false", "off", "0"):
        return False
    raise ValueError(f"invalid truth value {val!r} for environment {varname!r}")


def int_env(varname: str, default: int) -> int:
    """Read an environment variable and interpret it as an integer."""
    return int(os.getenv(varname, str(default)))


def float_env(varname: str, default: float) -> float:
    """Read an environment variable and interpret it as a float."""
    return float(os.getenv(varname, repr(default)))


def str_env(varname: str, default: str) -> str:
    """Read an environment variable as a stripped, lower-cased string."""
    return os.getenv(varname, default).strip().lower()


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Settings:
    """Snapshot of the active driver defaults."""

    weight_type: str = "cotangent"
    workers: int = 1
    eps: float = 1e-12
    verify_on_build: bool = False

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1; got {self.workers}")
        if self.eps < 0.0:
            raise ValueError(f"eps must be non-negative; got {self.eps}")


def _settings_from_env() -> Settings:
    """Build a `Settings` snapshot from LBMESH_* environment variables."""
    settings = Settings(
        weight_type=str_env("LBMESH_WEIGHT_TYPE", "cotangent"),
        workers=int_env("LBMESH_WORKERS", 1),
        eps=float_env("LBMESH_EPS", 1e-12),
        verify_on_build=bool_env("LBMESH_VERIFY", False),
    )
    _LOGGER.debug("Settings from environment: %s", settings)
    return settings


class Config:
    """Global configuration for lbmesh drivers.

    Holds the active `Settings` and lets callers reconfigure them globally
    or for the duration of a `with` block.
    """

    def __init__(self) -> None:
        """Initialize config using environment defaults."""
        self._settings: Settings = _settings_from_env()
        _LOGGER.info("Config initialized: %s", self._settings)

    def configure(
        self,
        *,
        weight_type: Optional[Any] = None,
        workers: Optional[int] = None,
        eps: Optional[float] = None,
        verify_on_build: Optional[bool] = None,
    ) -> Config:
        """Update the active settings; arguments left as None are unchanged.

        Returns:
            The `Config` instance (for chaining).
        """
        changes: dict[str, Any] = {}
        if weight_type is not None:
            # Stored by name so the config layer does not import the enum.
            changes["weight_type"] = str(getattr(weight_type, "value", weight_type))
        if workers is not None:
            changes["workers"] = int(workers)
        if eps is not None:
            changes["eps"] = float(eps)
        if verify_on_build is not None:
            changes["verify_on_build"] = bool(verify_on_build)

        self._settings = replace(self._settings, **changes)
        _LOGGER.info("Reconfigured: %s", self._settings)
        return self

    @contextlib.contextmanager
    def use(self, **overrides: Any) -> Iterator[Config]:
        """Temporarily override settings within a context manager.

        Yields:
            The `Config` instance. Restores the previous settings on exit.
        """
        prev = self._settings
        try:
            self.configure(**overrides)
            yield self
        finally:
            self._settings = prev
            _LOGGER.info("Restored previous settings: %s", self._settings)

    def reset(self) -> None:
        """Reload settings from the environment."""
        self._settings = _settings_from_env()

    @property
    def settings(self) -> Settings:
        """Return the active settings snapshot."""
        return self._settings

    @property
    def weight_type(self) -> str:
        """Return the default Laplacian weighting scheme name."""
        return self._settings.weight_type

    @property
    def workers(self) -> int:
        """Return the default number of worker threads."""
        return self._settings.workers

    @property
    def eps(self) -> float:
        """Return the degeneracy tolerance."""
        return self._settings.eps

    @property
    def verify_on_build(self) -> bool:
        """Return True if meshes verify their connectivity after construction."""
        return self._settings.verify_on_build


# Singleton & forwards
config = Config()


def configure(
    *,
    weight_type: Optional[Any] = None,
    workers: Optional[int] = None,
    eps: Optional[float] = None,
    verify_on_build: Optional[bool] = None,
) -> Config:
    """Update the active settings (module-level)."""
    return config.configure(
        weight_type=weight_type,
        workers=workers,
        eps=eps,
        verify_on_build=verify_on_build,
    )


def use(**overrides: Any) -> ContextManager[Config]:
    """Temporarily override settings within a context manager (module-level)."""
    return config.use(**overrides)


def default_weight_type() -> str:
    """Return the default Laplacian weighting scheme name (module-level)."""
    return config.weight_type


def workers() -> int:
    """Return the default worker count (module-level)."""
    return config.workers


def eps() -> float:
    """Return the degeneracy tolerance (module-level)."""
    return config.eps


def verify_on_build() -> bool:
    """Return the post-construction verification flag (module-level)."""
    return config.verify_on_build
