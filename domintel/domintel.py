#!/usr/bin/env python3
"""Module exposing the CLI entrypoint and public APIs in one place.

External scripts can `import domintel.domintel` without depending on the
internal file structure.
"""

from .cli import main
from .core import DOMINTEL, DomainReport, build_report, check_propagation, fmt_td
from .output import output, output_propagation
from .version import __version__

__all__ = [
    "__version__",
    "DOMINTEL",
    "DomainReport",
    "build_report",
    "check_propagation",
    "fmt_td",
    "main",
    "output",
    "output_propagation",
]
