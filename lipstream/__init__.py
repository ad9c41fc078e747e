"""lipstream: streaming log-mel features and viseme inference for lip-sync."""

from importlib.metadata import version, PackageNotFoundError

__all__ = [
    "get_version",
]


def get_version() -> str:
    """Return package version if installed as distribution."""
    try:
        return version("lipstream")
    except PackageNotFoundError:
        return "0.0.0"
