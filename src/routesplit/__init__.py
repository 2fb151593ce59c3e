"""Route-module chunk splitting analysis for file-based routing builds.

The package decides which client capabilities of a route module
(``clientAction``, ``clientLoader``, ``clientMiddleware`` and
``HydrateFallback``) can be split into their own chunks, and generates the
source text of those chunks.

Example:
    >>> from routesplit import __version__
    >>> __version__.split(".")[0].isdigit()
    True
"""

from importlib import metadata

try:
    __version__ = metadata.version("routesplit")
except metadata.PackageNotFoundError:  # pragma: no cover - running from a source tree
    __version__ = "0.0.0"

__all__ = ["__version__"]
