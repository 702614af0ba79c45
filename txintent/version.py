"""
Version information for txintent.
"""
import importlib.metadata
import pathlib

import tomli

DIST_NAME = "txintent"
FALLBACK_VERSION = "0.1.0"


def _pyproject_version() -> str:
    """Version declared in the source checkout's pyproject.toml"""
    path = pathlib.Path(__file__).parent.parent / "pyproject.toml"
    try:
        with path.open("rb") as f:
            return tomli.load(f)["project"]["version"]
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        return FALLBACK_VERSION


def get_version() -> str:
    """Installed distribution version, or the checkout's when running from source"""
    try:
        return importlib.metadata.version(DIST_NAME)
    except importlib.metadata.PackageNotFoundError:
        return _pyproject_version()


__version__ = get_version()
