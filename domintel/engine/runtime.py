from __future__ import annotations

"""Report runtime for domintel.

This module is used by both the CLI and the Python API:
- propagation check across record types (`check_propagation`)
- full domain report: propagation plus single-source probes (`build_report`)
- sync entry points (`_run_coro_sync`, `DOMINTEL`)

Every probe owns its own deadline and failure handling, so a report is always
returned even when some sections are unavailable.
"""

import asyncio
import logging
import os
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Union

import httpx

from ..config import Settings, load_settings
from ..probes import fingerprint, geo, records, tls, whois
from ..probes.base import ProbeResult
from .aggregate import aggregate
from .analyzer import PropagationVerdict
from .fanout import FanOutEngine
from .resolver import RecordType, ResolverEndpoint

logger = logging.getLogger("domintel")
logger.setLevel(os.getenv("DOMINTEL_LOG_LEVEL", "WARNING").upper())
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", "%H:%M:%S"))
    logger.addHandler(handler)

PROBE_NAMES = ("dns", "whois", "tls", "hosting", "technology")


def fmt_td(td: Optional[timedelta]) -> str:
    if td is None:
        return "-"
    total_seconds = int(td.total_seconds())
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


@dataclass
class DomainReport:
    """Everything gathered for one domain in one request. Never shared or stored."""

    domain: str
    propagation: Dict[str, PropagationVerdict] = field(default_factory=dict)
    probes: Dict[str, ProbeResult] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    elapsed: Optional[timedelta] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "timestamp": self.started_at.isoformat(),
            "elapsed": fmt_td(self.elapsed),
            "propagation": {key: verdict.to_dict() for key, verdict in self.propagation.items()},
            "probes": {name: result.to_dict() for name, result in self.probes.items()},
        }


def _resolve_settings(
    settings: Optional[Settings],
    endpoints: Optional[Sequence[ResolverEndpoint]],
    dns_timeout: Optional[float],
    probe_timeout: Optional[float],
) -> Settings:
    base = settings or load_settings()
    return base.override(resolvers=endpoints, dns_timeout=dns_timeout, probe_timeout=probe_timeout)


async def check_propagation(
    domain: str,
    record_types: Optional[Iterable[Union[RecordType, str]]] = None,
    settings: Optional[Settings] = None,
    endpoints: Optional[Sequence[ResolverEndpoint]] = None,
    engine: Optional[FanOutEngine] = None,
    io_executor: Optional[ThreadPoolExecutor] = None,
) -> Dict[str, PropagationVerdict]:
    """Propagation verdict per record type (A, NS, MX, TXT by default)."""
    cfg = _resolve_settings(settings, endpoints, None, None)
    if engine is None:
        engine = FanOutEngine(cfg.resolvers, deadline=cfg.dns_timeout, io_executor=io_executor)
    logger.info("Checking propagation for %s across %d resolvers", domain, len(engine.endpoints))
    return await aggregate(domain, record_types, engine)


def _probe_factories(
    domain: str,
    cfg: Settings,
    client: httpx.AsyncClient,
    io_executor: ThreadPoolExecutor,
) -> Dict[str, Callable[[], Awaitable[ProbeResult]]]:
    deadline = cfg.probe_timeout
    return {
        "dns": lambda: records.probe(domain, deadline, io_executor=io_executor),
        "whois": lambda: whois.probe(domain, deadline, io_executor=io_executor),
        "tls": lambda: tls.probe(domain, deadline, io_executor=io_executor),
        "hosting": lambda: geo.probe(domain, deadline, client=client, url_template=cfg.geoip_url, io_executor=io_executor),
        "technology": lambda: fingerprint.probe(domain, deadline, client=client, user_agent=cfg.user_agent),
    }


async def build_report(
    domain: str,
    settings: Optional[Settings] = None,
    record_types: Optional[Iterable[Union[RecordType, str]]] = None,
    endpoints: Optional[Sequence[ResolverEndpoint]] = None,
    probes: Optional[Iterable[str]] = None,
    dns_timeout: Optional[float] = None,
    probe_timeout: Optional[float] = None,
) -> DomainReport:
    """Run the propagation check and the selected probes concurrently.

    `probes` limits the single-source probes (default: all of PROBE_NAMES);
    pass an empty list for a propagation-only report.
    """
    cfg = _resolve_settings(settings, endpoints, dns_timeout, probe_timeout)
    selected: List[str] = list(PROBE_NAMES if probes is None else probes)
    report = DomainReport(domain=domain)
    started = time.perf_counter()

    io_workers = max(16, len(cfg.resolvers) * 4 + len(selected))
    with ThreadPoolExecutor(max_workers=io_workers) as io_executor:
        async with httpx.AsyncClient(
            http2=True,
            verify=False,
            timeout=httpx.Timeout(cfg.probe_timeout),
        ) as client:
            factories = _probe_factories(domain, cfg, client, io_executor)
            unknown = [name for name in selected if name not in factories]
            for name in unknown:
                report.probes[name] = ProbeResult.unavailable(name, f"Unknown probe: {name}")
            running = [name for name in selected if name in factories]

            propagation_task = check_propagation(
                domain,
                record_types,
                settings=cfg,
                io_executor=io_executor,
            )
            results = await asyncio.gather(
                propagation_task,
                *(factories[name]() for name in running),
            )

    report.propagation = results[0]
    for name, result in zip(running, results[1:]):
        report.probes[name] = result
    report.elapsed = timedelta(seconds=time.perf_counter() - started)

    unavailable = [name for name, result in report.probes.items() if not result.available]
    if unavailable:
        logger.info("Report for %s finished with unavailable sections: %s", domain, ", ".join(unavailable))
    return report


def _run_coro_sync(coro: Any) -> Any:
    """Run async code from sync callers (CLI and public API).

    If already inside an event loop, execute in a helper thread to avoid
    `RuntimeError: asyncio.run() cannot be called from a running event loop`.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    outcome: Dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["result"] = asyncio.run(coro)
        except Exception as exc:  # pragma: no cover - fallback path
            outcome["error"] = exc

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    thread.join()

    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")


def DOMINTEL(
    domain: str,
    record_types: Optional[Iterable[Union[RecordType, str]]] = None,
    probes: Optional[Iterable[str]] = None,
    endpoints: Optional[Sequence[ResolverEndpoint]] = None,
    dns_timeout: Optional[float] = None,
    probe_timeout: Optional[float] = None,
    as_dict: bool = True,
) -> Union[Dict[str, Any], DomainReport]:
    """Public synchronous Python API entrypoint.

    Example:
    `DOMINTEL("example.com", record_types=["A", "MX"], probes=["tls"])`
    """
    report = _run_coro_sync(
        build_report(
            domain,
            record_types=record_types,
            endpoints=endpoints,
            probes=probes,
            dns_timeout=dns_timeout,
            probe_timeout=probe_timeout,
        )
    )
    return report.to_dict() if as_dict else report
