"""repo-vitals package root."""

from vitals.exceptions import VitalsError

__all__ = ["__version__", "VitalsError"]

__version__ = "0.1.0"
