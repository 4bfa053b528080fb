"""Package version, taken from the installed distribution metadata."""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("bookwiki")
except PackageNotFoundError:
    # Source checkout without `pip install -e .`
    __version__ = "0.0.0+local"
