"""Ripple – Monte Carlo policy simulator with equity-stratified outcomes."""

from importlib import metadata

try:  # pragma: no cover - fallback when package not installed
    __version__ = metadata.version("ripple-policy-sim")
except metadata.PackageNotFoundError:  # type: ignore[attr-defined]
    __version__ = "0.0.0"

__all__ = ["__version__"]
