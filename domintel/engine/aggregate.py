from __future__ import annotations

"""Propagation check across several record types at once."""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .analyzer import PropagationVerdict, analyze, failed_verdict
from .fanout import FanOutEngine
from .resolver import PROPAGATION_RECORD_TYPES, RecordType, ResolverEndpoint

logger = logging.getLogger("domintel.aggregate")

RecordTypeArg = Union[RecordType, str]


def _key(record_type: RecordTypeArg) -> str:
    if isinstance(record_type, RecordType):
        return record_type.value
    return str(record_type).strip().upper()


async def _verdict_for(engine: FanOutEngine, domain: str, record_type: RecordTypeArg) -> PropagationVerdict:
    try:
        outcomes = await engine.run(domain, record_type)
        return analyze(outcomes, _key(record_type))
    except Exception as exc:
        message = str(exc).strip() or exc.__class__.__name__
        logger.warning("Propagation check for %s %s failed: %s", domain, _key(record_type), message)
        return failed_verdict(_key(record_type), len(engine.endpoints), message)


async def aggregate(
    domain: str,
    record_types: Optional[Iterable[RecordTypeArg]],
    engine: FanOutEngine,
) -> Dict[str, PropagationVerdict]:
    """Run fan-out + analysis for each record type concurrently.

    Keys are upper-case record-type names in request order; `None` means
    A, NS, MX and TXT. One record type failing yields a FAILED verdict for
    that key only.
    """
    requested: List[RecordTypeArg] = list(PROPAGATION_RECORD_TYPES if record_types is None else record_types)
    keys: List[str] = []
    unique: List[RecordTypeArg] = []
    for rtype in requested:
        key = _key(rtype)
        if key in keys:
            continue
        keys.append(key)
        unique.append(rtype)

    verdicts = await asyncio.gather(*(_verdict_for(engine, domain, rtype) for rtype in unique))
    return dict(zip(keys, verdicts))


class PropagationChecker:
    """Convenience wrapper binding an endpoint list to `aggregate`."""

    def __init__(
        self,
        endpoints: Sequence[ResolverEndpoint],
        deadline: float = 5.0,
        engine: Optional[FanOutEngine] = None,
    ):
        self.engine = engine or FanOutEngine(endpoints, deadline=deadline)

    async def check(
        self,
        domain: str,
        record_types: Optional[Iterable[RecordTypeArg]] = None,
    ) -> Dict[str, PropagationVerdict]:
        verdicts = await aggregate(domain, record_types, self.engine)
        for key, verdict in verdicts.items():
            logger.info("%s %s: %s (%d%%)", domain, key, verdict.status.value, verdict.agreement_percentage)
        return verdicts
