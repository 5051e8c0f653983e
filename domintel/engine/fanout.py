from __future__ import annotations

"""Concurrent fan-out of one record-type query over many resolvers."""

import asyncio
import logging
import time
from concurrent.futures import Executor
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from .resolver import DEFAULT_QUERY_DEADLINE, ProbeOutcome, RecordType, ResolverEndpoint, query_endpoint

logger = logging.getLogger("domintel.fanout")

QueryFunc = Callable[..., Awaitable[ProbeOutcome]]

# Extra time granted on top of the per-query deadline before a task is abandoned.
DEADLINE_GRACE = 0.5


class FanOutEngine:
    """Query every configured resolver for one record type at once.

    `run` always returns one `ProbeOutcome` per endpoint, in endpoint order.
    The `query` callable is injectable so tests can replace real DNS traffic.
    """

    def __init__(
        self,
        endpoints: Sequence[ResolverEndpoint],
        deadline: float = DEFAULT_QUERY_DEADLINE,
        query: Optional[QueryFunc] = None,
        io_executor: Optional[Executor] = None,
    ):
        self.endpoints = tuple(endpoints)
        self.deadline = float(deadline)
        self.query = query or query_endpoint
        self.io_executor = io_executor

    async def _query_one(self, domain: str, record_type: RecordType, endpoint: ResolverEndpoint) -> ProbeOutcome:
        started = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(
                self.query(domain, record_type, endpoint, self.deadline, io_executor=self.io_executor),
                timeout=self.deadline + DEADLINE_GRACE,
            )
        except asyncio.TimeoutError:
            outcome = ProbeOutcome.failure(endpoint, record_type, "timeout", int((time.perf_counter() - started) * 1000))
        except Exception as exc:
            message = str(exc).strip()
            detail = f"{exc.__class__.__name__}: {message}" if message else exc.__class__.__name__
            outcome = ProbeOutcome.failure(endpoint, record_type, detail, int((time.perf_counter() - started) * 1000))
        return outcome

    async def run(self, domain: str, record_type: Union[RecordType, str]) -> List[ProbeOutcome]:
        rtype = RecordType.parse(record_type)
        if not self.endpoints:
            return []

        tasks = [asyncio.ensure_future(self._query_one(domain, rtype, endpoint)) for endpoint in self.endpoints]
        outcomes = await asyncio.gather(*tasks)

        failed = sum(1 for o in outcomes if not o.responded)
        if failed:
            logger.debug("%s %s: %d/%d resolvers failed", domain, rtype.value, failed, len(outcomes))
        return list(outcomes)
