from __future__ import annotations

"""Input gate applied before a report is built.

Cleans user input to a bare hostname, checks its syntax and refuses names
that resolve to private, loopback, link-local, multicast or reserved IPv4
space.
"""

import asyncio
import ipaddress
import logging
import re
from typing import Any, Dict, Optional

import dns.exception
import dns.resolver

logger = logging.getLogger("domintel.validation")

LABEL_RE = re.compile(r"^[a-z0-9_-]+$")
TLD_RE = re.compile(r"^[a-z]{2,63}$|^xn--[a-z0-9-]{2,59}$")


def clean_domain(value: Optional[str]) -> str:
    """Strip scheme, www., port, path, query, fragment and whitespace."""
    host = re.sub(r"\s+", "", (value or "").lower())
    host = re.sub(r"^\w+://", "", host)
    host = re.split(r"[/?#]", host, maxsplit=1)[0]
    host = re.sub(r":\d*$", "", host)
    if host.startswith("www."):
        host = host[4:]
    return host.strip(".")


def is_valid_domain(domain: Optional[str]) -> bool:
    host = (domain or "").strip()
    if not host or len(host) > 253 or ".." in host:
        return False
    try:
        host = host.encode("idna").decode("ascii").lower()
    except UnicodeError:
        return False
    labels = host.split(".")
    if len(labels) < 2:
        return False
    for label in labels:
        if not label or len(label) > 63 or not LABEL_RE.match(label):
            return False
        if label.startswith("-") or label.endswith("-"):
            return False
    return bool(TLD_RE.match(labels[-1]))


def normalize_domain(value: Optional[str]) -> Optional[str]:
    host = clean_domain(value)
    if not is_valid_domain(host):
        return None
    return host.encode("idna").decode("ascii")


def is_private_address(ip: str) -> bool:
    """True for anything that is not a public IPv4 address."""
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return True
    if addr.version != 4:
        return True
    return (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_multicast
        or addr.is_reserved
        or addr.is_unspecified
    )


def ssrf_check_sync(domain: str, timeout: float = 5.0) -> Dict[str, Any]:
    resolver = dns.resolver.Resolver()
    resolver.timeout = timeout
    resolver.lifetime = timeout
    try:
        answers = resolver.resolve(domain, "A")
    except dns.resolver.NXDOMAIN:
        return {"safe": False, "reason": "Domain not found"}
    except dns.resolver.NoAnswer:
        return {"safe": False, "reason": "No DNS records found"}
    except (dns.exception.Timeout, dns.resolver.NoNameservers) as exc:
        return {"safe": False, "reason": f"DNS resolution failed: {exc.__class__.__name__}"}

    addresses = [str(rr.address) for rr in answers]
    for ip in addresses:
        if is_private_address(ip):
            logger.warning("Blocked %s: resolves to private address %s", domain, ip)
            return {"safe": False, "reason": "Domain resolves to private IP address", "ip": ip}
    return {"safe": True, "ip": addresses[0] if addresses else None}


async def ssrf_check(domain: str, timeout: float = 5.0) -> Dict[str, Any]:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, ssrf_check_sync, domain, timeout)
