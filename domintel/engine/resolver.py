from __future__ import annotations

"""Single-endpoint DNS queries.

One call asks exactly one public resolver for one record type and returns a
`ProbeOutcome`. The caller's default resolver configuration is never used,
so every answer can be attributed to the endpoint that produced it.
"""

import asyncio
import enum
import ipaddress
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Tuple, Union

import dns.exception
import dns.resolver

from ..errors import InvalidInputError

logger = logging.getLogger("domintel.resolver")

DEFAULT_QUERY_DEADLINE = 5.0


class RecordType(enum.Enum):
    A = "A"
    AAAA = "AAAA"
    NS = "NS"
    MX = "MX"
    TXT = "TXT"

    @classmethod
    def parse(cls, value: Union["RecordType", str]) -> "RecordType":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            raise InvalidInputError(f"Unsupported record type: {value!r}") from None

    def canonicalize(self, rr: Any) -> str:
        """Comparable text for one rdata of this type."""
        if self is RecordType.A or self is RecordType.AAAA:
            return str(getattr(rr, "address", rr)).strip()
        if self is RecordType.NS:
            return _hostname(getattr(rr, "target", rr))
        if self is RecordType.MX:
            return _hostname(getattr(rr, "exchange", rr))
        if self is RecordType.TXT:
            return _txt_text(rr)
        raise InvalidInputError(f"No canonical form for record type {self.value}")


PROPAGATION_RECORD_TYPES: Tuple[RecordType, ...] = (
    RecordType.A,
    RecordType.NS,
    RecordType.MX,
    RecordType.TXT,
)


def _hostname(value: Any) -> str:
    return str(value).strip().rstrip(".").lower()


def _txt_text(rr: Any) -> str:
    chunks = getattr(rr, "strings", None)
    if isinstance(chunks, (list, tuple)):
        parts = []
        for chunk in chunks:
            if isinstance(chunk, (bytes, bytearray)):
                parts.append(chunk.decode("utf-8", errors="ignore"))
            else:
                parts.append(str(chunk))
        return "".join(parts)
    text = str(rr).strip()
    if text.startswith('"') and text.endswith('"') and len(text) >= 2:
        text = text[1:-1]
    return text.replace('" "', "")


@dataclass(frozen=True)
class ResolverEndpoint:
    name: str
    address: str
    region: str = "Global"

    def __post_init__(self) -> None:
        try:
            ipaddress.ip_address(self.address)
        except ValueError:
            raise InvalidInputError(f"Resolver {self.name!r} needs an IP literal, got {self.address!r}") from None


class ProbeState(enum.Enum):
    SUCCESS = "success"
    NO_DATA = "no_data"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one resolver query for one record type.

    SUCCESS always carries values, NO_DATA and ERROR never do, and ERROR
    always carries a detail string.
    """

    endpoint: ResolverEndpoint
    record_type: RecordType
    state: ProbeState
    values: Tuple[str, ...] = ()
    error: Optional[str] = None
    elapsed_ms: Optional[int] = None
    extras: Tuple[Tuple[int, str], ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if self.state is ProbeState.SUCCESS:
            if not self.values:
                raise ValueError("success outcome requires at least one value")
            if self.error is not None:
                raise ValueError("success outcome cannot carry an error")
        elif self.values:
            raise ValueError(f"{self.state.value} outcome cannot carry values")
        if self.state is ProbeState.ERROR and not self.error:
            raise ValueError("error outcome requires an error detail")

    @classmethod
    def success(
        cls,
        endpoint: ResolverEndpoint,
        record_type: RecordType,
        values: Iterable[str],
        elapsed_ms: Optional[int] = None,
        extras: Iterable[Tuple[int, str]] = (),
    ) -> "ProbeOutcome":
        return cls(endpoint, record_type, ProbeState.SUCCESS, tuple(values), None, elapsed_ms, tuple(extras))

    @classmethod
    def no_data(
        cls,
        endpoint: ResolverEndpoint,
        record_type: RecordType,
        detail: Optional[str] = None,
        elapsed_ms: Optional[int] = None,
    ) -> "ProbeOutcome":
        return cls(endpoint, record_type, ProbeState.NO_DATA, (), detail, elapsed_ms)

    @classmethod
    def failure(
        cls,
        endpoint: ResolverEndpoint,
        record_type: RecordType,
        detail: str,
        elapsed_ms: Optional[int] = None,
    ) -> "ProbeOutcome":
        return cls(endpoint, record_type, ProbeState.ERROR, (), detail or "Query failed", elapsed_ms)

    @property
    def responded(self) -> bool:
        return self.state is not ProbeState.ERROR

    def to_dict(self) -> dict:
        data = {
            "server": self.endpoint.name,
            "ip": self.endpoint.address,
            "location": self.endpoint.region,
            "status": self.state.value,
            "values": list(self.values),
            "error": self.error,
            "elapsed_ms": self.elapsed_ms,
        }
        if self.extras:
            data["mx"] = [{"priority": prio, "exchange": host} for prio, host in self.extras]
        return data


def _error_text(exc: BaseException) -> str:
    message = str(exc).strip()
    return f"{exc.__class__.__name__}: {message}" if message else exc.__class__.__name__


def _build_resolver(endpoint: ResolverEndpoint, deadline: float) -> dns.resolver.Resolver:
    # configure=False keeps /etc/resolv.conf (and its search list) out of the query.
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = [endpoint.address]
    resolver.timeout = deadline
    resolver.lifetime = deadline
    return resolver


def _resolve_sync(domain: str, record_type: RecordType, endpoint: ResolverEndpoint, deadline: float) -> ProbeOutcome:
    started = time.perf_counter()

    def elapsed() -> int:
        return int((time.perf_counter() - started) * 1000)

    resolver = _build_resolver(endpoint, deadline)
    try:
        answers = resolver.resolve(domain, record_type.value, search=False)
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return ProbeOutcome.no_data(endpoint, record_type, f"No {record_type.value} records found", elapsed())
    except dns.exception.Timeout:
        return ProbeOutcome.failure(endpoint, record_type, "timeout", elapsed())
    except dns.resolver.NoNameservers as exc:
        return ProbeOutcome.failure(endpoint, record_type, _error_text(exc), elapsed())
    except Exception as exc:
        return ProbeOutcome.failure(endpoint, record_type, _error_text(exc), elapsed())

    values = [record_type.canonicalize(rr) for rr in answers]
    values = [v for v in values if v]
    if not values:
        return ProbeOutcome.no_data(endpoint, record_type, f"No {record_type.value} records found", elapsed())

    extras: Tuple[Tuple[int, str], ...] = ()
    if record_type is RecordType.MX:
        extras = tuple(
            sorted((int(getattr(rr, "preference", 0)), record_type.canonicalize(rr)) for rr in answers)
        )
    return ProbeOutcome.success(endpoint, record_type, values, elapsed(), extras)


async def query_endpoint(
    domain: str,
    record_type: Union[RecordType, str],
    endpoint: ResolverEndpoint,
    deadline: float = DEFAULT_QUERY_DEADLINE,
    io_executor: Optional[Executor] = None,
) -> ProbeOutcome:
    """Ask one resolver for one record type within `deadline` seconds."""
    rtype = RecordType.parse(record_type)
    loop = asyncio.get_running_loop()
    started = time.perf_counter()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(io_executor, _resolve_sync, domain, rtype, endpoint, deadline),
            timeout=deadline,
        )
    except asyncio.TimeoutError:
        logger.debug("%s %s via %s timed out", domain, rtype.value, endpoint.address)
        return ProbeOutcome.failure(endpoint, rtype, "timeout", int((time.perf_counter() - started) * 1000))
