from __future__ import annotations

import importlib.metadata


def get_version() -> str:
    """
    Get the installed version of the speechmatics-sdk package.

    Returns:
        The package version string (e.g. "1.2.3"), or the version declared
        in the package itself when running from a source checkout.
    """
    try:
        return importlib.metadata.version("speechmatics-sdk")
    except importlib.metadata.PackageNotFoundError:
        from . import __version__

        return __version__


def sdk_tag() -> str:
    """Value sent in the ``sm-sdk`` query parameter."""
    return f"python-v{get_version()}"
