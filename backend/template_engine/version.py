"""
PURPOSE: Expose the installed package version.

Version data is read once from the distribution metadata and cached.
"""

from importlib.metadata import PackageNotFoundError, version
from typing import Optional

DISTRIBUTION_NAME = "stepwise-template-engine"

_version_cache: Optional[str] = None


def get_version() -> str:
    """
    PURPOSE: Return the package version, or "0.0.0-dev" when running from a
    source tree that was never installed.
    """
    global _version_cache

    if _version_cache is None:
        try:
            _version_cache = version(DISTRIBUTION_NAME)
        except PackageNotFoundError:
            _version_cache = "0.0.0-dev"
    return _version_cache
