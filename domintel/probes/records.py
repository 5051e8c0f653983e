from __future__ import annotations

"""Record listing through the default resolver (A, AAAA, MX, TXT, NS, SOA, CAA)."""

import asyncio
import logging
from concurrent.futures import Executor
from typing import Any, Dict, Optional, Tuple

import dns.resolver

from ..engine.resolver import RecordType
from .base import ProbeResult, one_line, run_probe

logger = logging.getLogger("domintel.probes.records")

PROBE_NAME = "dns"
RECORD_TYPES = ("A", "AAAA", "MX", "TXT", "NS", "SOA", "CAA")
# Share of the probe deadline each record type may use.
TYPE_DEADLINE_SHARE = 0.8


def _format(rtype: str, answers: Any) -> Any:
    if rtype in ("A", "AAAA"):
        return [{"address": str(rr.address)} for rr in answers]
    if rtype == "MX":
        rows = [{"priority": int(rr.preference), "exchange": RecordType.MX.canonicalize(rr)} for rr in answers]
        return sorted(rows, key=lambda row: row["priority"])
    if rtype == "TXT":
        return [{"text": RecordType.TXT.canonicalize(rr)} for rr in answers]
    if rtype == "NS":
        return [{"nameserver": RecordType.NS.canonicalize(rr)} for rr in answers]
    if rtype == "SOA":
        rr = answers[0]
        return {
            "nsname": str(rr.mname).rstrip("."),
            "hostmaster": str(rr.rname).rstrip("."),
            "serial": int(rr.serial),
            "refresh": int(rr.refresh),
            "retry": int(rr.retry),
            "expire": int(rr.expire),
            "minttl": int(rr.minimum),
        }
    if rtype == "CAA":
        return [
            {
                "critical": int(rr.flags),
                "tag": rr.tag.decode("ascii", errors="ignore") if isinstance(rr.tag, bytes) else str(rr.tag),
                "value": rr.value.decode("utf-8", errors="ignore") if isinstance(rr.value, bytes) else str(rr.value),
            }
            for rr in answers
        ]
    return [str(rr) for rr in answers]


def _build_resolver(timeout: float) -> dns.resolver.Resolver:
    resolver = dns.resolver.Resolver()
    resolver.timeout = timeout
    resolver.lifetime = timeout
    return resolver


async def query_all(
    domain: str,
    timeout: float,
    resolver: Optional[dns.resolver.Resolver] = None,
    io_executor: Optional[Executor] = None,
) -> Dict[str, Any]:
    """Query every record type at once; each type gets its own share of `timeout`.

    A failing or slow type is left empty and noted under "errors".
    """
    type_deadline = timeout * TYPE_DEADLINE_SHARE
    if resolver is None:
        resolver = _build_resolver(type_deadline)
    loop = asyncio.get_running_loop()

    async def one(rtype: str) -> Tuple[str, Any, Optional[str]]:
        empty: Any = None if rtype == "SOA" else []
        try:
            answers = await asyncio.wait_for(
                loop.run_in_executor(io_executor, resolver.resolve, domain, rtype),
                timeout=type_deadline,
            )
            return rtype, _format(rtype, answers), None
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return rtype, empty, None
        except asyncio.TimeoutError:
            logger.debug("%s %s lookup timed out after %.1fs", domain, rtype, type_deadline)
            return rtype, empty, "timeout"
        except Exception as exc:
            logger.debug("%s %s lookup failed: %s", domain, rtype, exc)
            return rtype, empty, one_line(exc)

    records: Dict[str, Any] = {"domain": domain, "errors": {}}
    for rtype, value, failure in await asyncio.gather(*(one(rtype) for rtype in RECORD_TYPES)):
        key = rtype.lower()
        records[key] = value
        if failure:
            records["errors"][key] = failure
    return records


async def probe(domain: str, deadline: float = 10.0, io_executor: Optional[Executor] = None) -> ProbeResult:
    async def work() -> Dict[str, Any]:
        return await query_all(domain, deadline, io_executor=io_executor)

    return await run_probe(PROBE_NAME, work, deadline)
