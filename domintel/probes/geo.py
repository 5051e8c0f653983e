from __future__ import annotations

"""Hosting and geolocation detection for the domain's first address."""

import asyncio
import logging
import re
from concurrent.futures import Executor
from typing import Any, Dict, Optional, Tuple

import dns.exception
import dns.resolver
import httpx

from ..errors import InvalidInputError
from .base import ProbeResult, run_probe

logger = logging.getLogger("domintel.probes.geo")

PROBE_NAME = "hosting"
GEOIP_FIELDS = "status,message,country,countryCode,region,regionName,city,lat,lon,timezone,isp,org,as"
ASN_RE = re.compile(r"AS(\d+)", re.IGNORECASE)

# Ordered: first match wins. Each row is (display name, type, org keywords, asn keywords).
PROVIDERS: Tuple[Tuple[str, str, Tuple[str, ...], Tuple[str, ...]], ...] = (
    ("Amazon Web Services (AWS)", "cloud", ("amazon", "aws"), ("amazon",)),
    ("Google Cloud Platform (GCP)", "cloud", ("google", "gcp"), ("google",)),
    ("Microsoft Azure", "cloud", ("microsoft", "azure"), ()),
    ("DigitalOcean", "cloud", ("digitalocean",), ()),
    ("Linode (Akamai)", "cloud", ("linode", "akamai"), ()),
    ("Vultr", "cloud", ("vultr",), ()),
    ("Hetzner", "cloud", ("hetzner",), ()),
    ("OVH", "cloud", ("ovh",), ()),
    ("Cloudflare", "cdn", ("cloudflare",), ()),
    ("Fastly", "cdn", ("fastly",), ()),
    ("BunnyCDN", "cdn", ("bunnycdn", "bunny"), ()),
    ("StackPath", "cdn", ("stackpath",), ()),
    ("GoDaddy", "hosting", ("godaddy",), ()),
    ("Bluehost", "hosting", ("bluehost",), ()),
    ("HostGator", "hosting", ("hostgator",), ()),
    ("DreamHost", "hosting", ("dreamhost",), ()),
    ("SiteGround", "hosting", ("siteground",), ()),
    ("Namecheap", "hosting", ("namecheap",), ()),
    ("Vercel", "platform", ("vercel",), ()),
    ("Netlify", "platform", ("netlify",), ()),
)


def classify_provider(geo: Dict[str, Any]) -> Dict[str, str]:
    org = str(geo.get("org") or geo.get("isp") or "").lower()
    asn = str(geo.get("as") or "").lower()
    for name, kind, org_words, asn_words in PROVIDERS:
        if any(word in org for word in org_words) or any(word in asn for word in asn_words):
            return {"name": name, "type": kind}
    return {"name": geo.get("org") or geo.get("isp") or "Unknown Provider", "type": "other"}


def extract_asn(value: Optional[str]) -> Optional[int]:
    match = ASN_RE.search(value or "")
    return int(match.group(1)) if match else None


def first_address(domain: str, timeout: float) -> str:
    """First IPv4 address of `domain`, else first IPv6 address."""
    resolver = dns.resolver.Resolver()
    resolver.timeout = timeout
    resolver.lifetime = timeout
    for qtype in ("A", "AAAA"):
        try:
            answers = resolver.resolve(domain, qtype)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer, dns.resolver.NoNameservers, dns.exception.Timeout):
            continue
        for rr in answers:
            return str(rr.address)
    raise InvalidInputError("Could not resolve domain to IP address")


async def lookup_ip(client: httpx.AsyncClient, ip: str, url_template: str, timeout: float) -> Dict[str, Any]:
    response = await client.get(url_template.format(ip=ip), params={"fields": GEOIP_FIELDS}, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    if data.get("status") == "fail":
        raise ValueError(f"IP geolocation lookup failed: {data.get('message') or 'IP lookup failed'}")
    return data


def build_hosting(domain: str, ip: str, geo: Dict[str, Any]) -> Dict[str, Any]:
    provider = classify_provider(geo)
    return {
        "domain": domain,
        "ip_address": ip,
        "provider": provider,
        "location": {
            "country": geo.get("country") or "Unknown",
            "country_code": geo.get("countryCode"),
            "region": geo.get("regionName") or geo.get("region"),
            "city": geo.get("city"),
            "timezone": geo.get("timezone"),
            "coordinates": {"lat": geo.get("lat"), "lon": geo.get("lon")},
        },
        "network": {
            "asn": geo.get("as"),
            "asn_number": extract_asn(geo.get("as")),
            "organization": geo.get("org") or geo.get("isp") or "Unknown",
            "isp": geo.get("isp"),
        },
        "is_cdn": provider["type"] == "cdn",
        "is_cloud": provider["type"] == "cloud",
    }


async def probe(
    domain: str,
    deadline: float = 10.0,
    client: Optional[httpx.AsyncClient] = None,
    url_template: str = "http://ip-api.com/json/{ip}",
    io_executor: Optional[Executor] = None,
) -> ProbeResult:
    async def work() -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        ip = await loop.run_in_executor(io_executor, first_address, domain, deadline)
        logger.debug("Resolved %s to %s", domain, ip)
        if client is not None:
            geo = await lookup_ip(client, ip, url_template, deadline)
        else:
            async with httpx.AsyncClient(timeout=deadline) as own_client:
                geo = await lookup_ip(own_client, ip, url_template, deadline)
        return build_hosting(domain, ip, geo)

    return await run_probe(PROBE_NAME, work, deadline)
