#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""Top-level executable and import-compatible shim.

Purpose:
- `python domintel.py ...` command execution
- imports for users that import from the repository root
"""

import os
import sys

from domintel.domintel import (
    DOMINTEL,
    DomainReport,
    __version__,
    build_report,
    check_propagation,
    fmt_td,
    main,
    output,
    output_propagation,
)

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

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted")
        try:
            sys.exit(0)
        except SystemExit:
            os._exit(0)
