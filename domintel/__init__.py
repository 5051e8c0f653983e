"""Public package surface for domintel.

Importing `domintel` exposes the high-level API function (`DOMINTEL`) and package
version, keeping internals hidden by default.
"""

from .core import DOMINTEL
from .version import __version__

__all__ = ["DOMINTEL", "__version__"]
