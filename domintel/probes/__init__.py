"""Single-source probes run next to the propagation check.

Each module exposes `probe(domain, deadline, ...) -> ProbeResult` and never
raises past that call.
"""

from .base import ProbeResult, run_probe

__all__ = ["ProbeResult", "run_probe"]
