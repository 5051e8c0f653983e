from __future__ import annotations

"""WHOIS lookup over TCP/43 with registrar referral following."""

import asyncio
import logging
import re
import socket
from concurrent.futures import Executor
from typing import Any, Dict, List, Optional

from ..errors import InvalidInputError
from .base import ProbeResult, run_probe

logger = logging.getLogger("domintel.probes.whois")

PROBE_NAME = "whois"
WHOIS_PORT = 43
MAX_REFERRALS = 2
MAX_RESPONSE_BYTES = 65536
RAW_TEXT_LIMIT = 5000
IANA_WHOIS = "whois.iana.org"

WHOIS_SERVERS = {
    "com": "whois.verisign-grs.com",
    "net": "whois.verisign-grs.com",
    "org": "whois.pir.org",
    "info": "whois.afilias.net",
    "io": "whois.nic.io",
    "co": "whois.nic.co",
    "dev": "whois.nic.google",
    "app": "whois.nic.google",
    "ai": "whois.nic.ai",
    "me": "whois.nic.me",
    "xyz": "whois.nic.xyz",
    "uk": "whois.nic.uk",
    "au": "whois.auda.org.au",
    "de": "whois.denic.de",
    "fr": "whois.nic.fr",
    "nl": "whois.sidn.nl",
    "ca": "whois.cira.ca",
    "us": "whois.nic.us",
    "eu": "whois.eu",
    "jp": "whois.jprs.jp",
    "br": "whois.registro.br",
}

REFERRAL_PATTERNS = (
    re.compile(r"Registrar WHOIS Server:\s*(\S+)", re.IGNORECASE),
    re.compile(r"Whois Server:\s*(\S+)", re.IGNORECASE),
    re.compile(r"refer:\s*(\S+)", re.IGNORECASE),
)

# Public suffixes of two labels: names under them keep three labels as their root.
MULTI_LABEL_SUFFIXES = ("com.br", "com.ar", "com.mx", "co.uk", "com.au", "co.za", "com.co")

FIELD_LABELS = (
    ("registrar", ("Registrar:", "Registrar Name:", "Sponsoring Registrar:")),
    ("registrar_url", ("Registrar URL:", "Registrar Web:")),
    ("created", ("Creation Date:", "Created Date:", "Registration Time:", "created:", "registered:")),
    ("updated", ("Updated Date:", "Last Updated:", "Last Modified:", "changed:")),
    ("expires", ("Registry Expiry Date:", "Registrar Registration Expiration Date:", "Expiration Date:", "Expiry Date:", "expires:", "paid-till:")),
    ("dnssec", ("DNSSEC:", "dnssec:")),
)


def query_whois(query: str, server: str, timeout: float) -> str:
    with socket.create_connection((server, WHOIS_PORT), timeout=timeout) as sock:
        sock.sendall((query + "\r\n").encode("utf-8"))
        chunks: List[bytes] = []
        size = 0
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
            size += len(chunk)
            if size > MAX_RESPONSE_BYTES:
                break
    return b"".join(chunks).decode("utf-8", errors="replace")


def root_domain(domain: str) -> str:
    """Registrable name of `domain`: api.example.co.uk -> example.co.uk."""
    labels = domain.strip().lower().rstrip(".").split(".")
    keep = 3 if len(labels) >= 3 and ".".join(labels[-2:]) in MULTI_LABEL_SUFFIXES else 2
    return ".".join(labels[-keep:])


def is_subdomain(domain: str) -> bool:
    return root_domain(domain) != domain.strip().lower().rstrip(".")


def extract_referral(raw: str) -> Optional[str]:
    for pattern in REFERRAL_PATTERNS:
        match = pattern.search(raw or "")
        if match:
            server = match.group(1).strip().rstrip(".").lower()
            if server and "." in server and "://" not in server:
                return server
    return None


def parse_whois(raw: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for key, labels in FIELD_LABELS:
        for label in labels:
            match = re.search(re.escape(label) + r"[ \t]*(.+)", raw, re.IGNORECASE)
            if match and match.group(1).strip():
                data[key] = match.group(1).strip()
                break

    servers = re.findall(r"(?:Name Server|nserver):\s*(\S+)", raw, re.IGNORECASE)
    data["name_servers"] = list(dict.fromkeys(ns.lower().rstrip(".") for ns in servers))
    statuses = re.findall(r"Domain Status:\s*(\S+)", raw, re.IGNORECASE)
    if not statuses:
        statuses = re.findall(r"^status:\s*(.+)$", raw, re.IGNORECASE | re.MULTILINE)
    data["status"] = list(dict.fromkeys(s.strip() for s in statuses))
    return data


def _registry_for(domain: str, timeout: float) -> str:
    tld = domain.rsplit(".", 1)[-1]
    server = WHOIS_SERVERS.get(tld)
    if server:
        return server
    try:
        raw = query_whois(tld, IANA_WHOIS, timeout)
    except OSError as exc:
        raise InvalidInputError(f"No WHOIS server found for .{tld}: {exc}") from None
    match = re.search(r"whois:\s*(\S+)", raw, re.IGNORECASE)
    if not match:
        raise InvalidInputError(f"No WHOIS server found for .{tld}")
    return match.group(1).strip()


def lookup(domain: str, timeout: float) -> Dict[str, Any]:
    domain = domain.strip().lower().rstrip(".")
    if "." not in domain:
        raise InvalidInputError("Invalid domain format")

    root = root_domain(domain)
    server = _registry_for(root, timeout)
    raw = query_whois(root, server, timeout)
    if not raw.strip():
        raise ValueError(f"Empty WHOIS response from {server}")
    servers = [server]

    for _ in range(MAX_REFERRALS):
        referral = extract_referral(raw)
        if not referral or referral in servers:
            break
        try:
            referred = query_whois(root, referral, timeout)
        except OSError as exc:
            logger.debug("WHOIS referral %s failed: %s", referral, exc)
            break
        servers.append(referral)
        if referred.strip():
            raw = referred

    record = parse_whois(raw)
    record.update(
        {
            "domain": domain,
            "root_domain": root,
            "is_subdomain": is_subdomain(domain),
            "servers": servers,
            "raw": raw[:RAW_TEXT_LIMIT],
        }
    )
    return record


async def probe(domain: str, deadline: float = 10.0, io_executor: Optional[Executor] = None) -> ProbeResult:
    async def work() -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(io_executor, lookup, domain, deadline)

    return await run_probe(PROBE_NAME, work, deadline)
