from __future__ import annotations

"""Runtime configuration for domintel.

Values come from built-in defaults, then environment variables (a local
`.env` file is honoured through python-dotenv), then CLI overrides.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .engine.resolver import DEFAULT_QUERY_DEADLINE, ResolverEndpoint
from .errors import InvalidInputError

load_dotenv()

logger = logging.getLogger("domintel.config")

DEFAULT_PROBE_TIMEOUT = 10.0
DEFAULT_GEOIP_URL = "http://ip-api.com/json/{ip}"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

DEFAULT_RESOLVERS: Tuple[ResolverEndpoint, ...] = (
    ResolverEndpoint("Google Primary", "8.8.8.8", "Global"),
    ResolverEndpoint("Google Secondary", "8.8.4.4", "Global"),
    ResolverEndpoint("Cloudflare Primary", "1.1.1.1", "Global"),
    ResolverEndpoint("Cloudflare Secondary", "1.0.0.1", "Global"),
    ResolverEndpoint("Quad9", "9.9.9.9", "Global"),
    ResolverEndpoint("OpenDNS Primary", "208.67.222.222", "USA"),
    ResolverEndpoint("OpenDNS Secondary", "208.67.220.220", "USA"),
    ResolverEndpoint("AdGuard DNS", "94.140.14.14", "Global"),
    ResolverEndpoint("DNS.WATCH", "84.200.69.80", "Europe"),
    ResolverEndpoint("Verisign", "64.6.64.6", "USA"),
    ResolverEndpoint("Level3", "209.244.0.3", "USA"),
)


@dataclass(frozen=True)
class Settings:
    dns_timeout: float = DEFAULT_QUERY_DEADLINE
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    geoip_url: str = DEFAULT_GEOIP_URL
    user_agent: str = DEFAULT_USER_AGENT
    resolvers: Tuple[ResolverEndpoint, ...] = field(default=DEFAULT_RESOLVERS)

    def override(self, **values: Any) -> "Settings":
        """Copy with every non-None value applied."""
        changes = {k: v for k, v in values.items() if v is not None}
        if "resolvers" in changes:
            changes["resolvers"] = tuple(changes["resolvers"])
        return replace(self, **changes)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def parse_resolvers(items: List[Dict[str, Any]]) -> Tuple[ResolverEndpoint, ...]:
    endpoints: List[ResolverEndpoint] = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidInputError(f"Resolver entry must be an object, got {item!r}")
        address = str(item.get("address") or item.get("ip") or "").strip()
        name = str(item.get("name") or address).strip()
        region = str(item.get("region") or item.get("location") or "Global").strip()
        endpoints.append(ResolverEndpoint(name, address, region))
    if not endpoints:
        raise InvalidInputError("Resolver list is empty")
    return tuple(endpoints)


def load_resolvers(path: Optional[str]) -> Tuple[ResolverEndpoint, ...]:
    """Load resolver endpoints from a JSON list, or the defaults when no path is given."""
    if not path:
        return DEFAULT_RESOLVERS
    try:
        data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise InvalidInputError(f"Resolvers file not found: {path}") from None
    except json.JSONDecodeError as exc:
        raise InvalidInputError(f"Resolvers file is not valid JSON: {exc}") from None
    if isinstance(data, dict):
        data = data.get("resolvers", [])
    if not isinstance(data, list):
        raise InvalidInputError("Resolvers file must hold a JSON list")
    return parse_resolvers(data)


def load_settings() -> Settings:
    return Settings(
        dns_timeout=_env_float("DOMINTEL_DNS_TIMEOUT", DEFAULT_QUERY_DEADLINE),
        probe_timeout=_env_float("DOMINTEL_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT),
        geoip_url=os.getenv("DOMINTEL_GEOIP_URL") or DEFAULT_GEOIP_URL,
        user_agent=os.getenv("DOMINTEL_USER_AGENT") or DEFAULT_USER_AGENT,
        resolvers=load_resolvers(os.getenv("DOMINTEL_RESOLVERS_FILE")),
    )
