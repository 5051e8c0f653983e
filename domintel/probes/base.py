from __future__ import annotations

"""Shared result type and failure boundary for single-source probes."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..errors import InvalidInputError

logger = logging.getLogger("domintel.probes")


@dataclass(frozen=True)
class ProbeResult:
    probe: str
    available: bool
    data: Optional[Any] = None
    reason: Optional[str] = None
    elapsed_ms: Optional[int] = None

    @classmethod
    def ok(cls, probe: str, data: Any, elapsed_ms: Optional[int] = None) -> "ProbeResult":
        return cls(probe=probe, available=True, data=data, elapsed_ms=elapsed_ms)

    @classmethod
    def unavailable(cls, probe: str, reason: str, elapsed_ms: Optional[int] = None) -> "ProbeResult":
        return cls(probe=probe, available=False, reason=reason or "unavailable", elapsed_ms=elapsed_ms)

    def to_dict(self) -> dict:
        return {
            "probe": self.probe,
            "available": self.available,
            "data": self.data,
            "reason": self.reason,
            "elapsed_ms": self.elapsed_ms,
        }


def one_line(exc: BaseException) -> str:
    message = " ".join(str(exc).split())
    return f"{exc.__class__.__name__}: {message}" if message else exc.__class__.__name__


async def run_probe(name: str, factory: Callable[[], Awaitable[Any]], deadline: float) -> ProbeResult:
    """Run one probe coroutine under `deadline`; never raises.

    `factory` returns the probe's payload. Timeouts, precondition failures and
    unexpected errors all come back as an unavailable result with a reason.
    """
    started = time.perf_counter()

    def elapsed() -> int:
        return int((time.perf_counter() - started) * 1000)

    try:
        data = await asyncio.wait_for(factory(), timeout=deadline)
    except asyncio.TimeoutError:
        logger.warning("%s probe timed out after %.1fs", name, deadline)
        return ProbeResult.unavailable(name, "timeout", elapsed())
    except InvalidInputError as exc:
        logger.info("%s probe skipped: %s", name, exc)
        return ProbeResult.unavailable(name, str(exc), elapsed())
    except Exception as exc:
        logger.warning("%s probe failed: %s", name, one_line(exc))
        return ProbeResult.unavailable(name, one_line(exc), elapsed())
    return ProbeResult.ok(name, data, elapsed())
