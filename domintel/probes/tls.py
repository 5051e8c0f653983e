from __future__ import annotations

"""TLS certificate inspection on port 443.

Two handshakes are made: a strict one that records whether the certificate is
trusted for the hostname, and an unverified pyOpenSSL one that extracts the
certificate and chain even when validation fails (expired, self-signed, wrong
host).
"""

import asyncio
import math
import select
import socket
import ssl
import time
from concurrent.futures import Executor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from cryptography import x509 as cx509
from OpenSSL import SSL, crypto

from ..errors import ProbeTimeout
from .base import ProbeResult, run_probe

PROBE_NAME = "tls"
TLS_PORT = 443
MAX_CHAIN_LINKS = 10


def _name_fields(name: crypto.X509Name) -> Dict[str, Optional[str]]:
    return {
        "common_name": name.commonName,
        "organization": name.organizationName,
        "country": name.countryName,
    }


def _asn1_time(raw: Optional[bytes]) -> Optional[datetime]:
    if not raw:
        return None
    return datetime.strptime(raw.decode("ascii"), "%Y%m%d%H%M%SZ").replace(tzinfo=timezone.utc)


def days_remaining(not_after: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    if not_after is None:
        return None
    now = now or datetime.now(timezone.utc)
    return math.ceil((not_after - now).total_seconds() / 86400)


def fingerprint(cert: crypto.X509) -> str:
    return cert.digest("sha256").decode("ascii")


def subject_alt_names(cert: crypto.X509) -> List[str]:
    try:
        ext = cert.to_cryptography().extensions.get_extension_for_class(cx509.SubjectAlternativeName)
    except cx509.ExtensionNotFound:
        return []
    return list(ext.value.get_values_for_type(cx509.DNSName))


def is_wildcard(common_name: Optional[str], sans: List[str]) -> bool:
    if common_name and common_name.startswith("*."):
        return True
    return any(san.startswith("*.") for san in sans)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_chain(chain: List[crypto.X509]) -> List[Dict[str, Any]]:
    """Walk presented chain links, stopping at a repeated fingerprint or the depth cap."""
    links: List[Dict[str, Any]] = []
    seen: set[str] = set()
    for cert in chain:
        if len(links) >= MAX_CHAIN_LINKS:
            break
        digest = fingerprint(cert)
        if digest in seen:
            break
        seen.add(digest)
        links.append(
            {
                "common_name": cert.get_subject().commonName or "Unknown",
                "issuer": cert.get_issuer().commonName or "Unknown",
                "valid_from": _iso(_asn1_time(cert.get_notBefore())),
                "valid_to": _iso(_asn1_time(cert.get_notAfter())),
                "fingerprint": digest,
            }
        )
    return links


def summarize_certificate(
    domain: str,
    leaf: crypto.X509,
    chain: List[crypto.X509],
    trusted: bool,
    strict_error: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    subject = leaf.get_subject()
    issuer = leaf.get_issuer()
    sans = subject_alt_names(leaf)
    not_before = _asn1_time(leaf.get_notBefore())
    not_after = _asn1_time(leaf.get_notAfter())
    subject_fields = _name_fields(subject)
    if not subject_fields["common_name"]:
        subject_fields["common_name"] = domain
    issuer_fields = _name_fields(issuer)
    issuer_fields["organization"] = issuer_fields["organization"] or "Unknown"
    issuer_fields["common_name"] = issuer_fields["common_name"] or "Unknown"

    return {
        "domain": domain,
        "valid": trusted,
        "strict_error": strict_error,
        "issuer": issuer_fields,
        "subject": subject_fields,
        "valid_from": _iso(not_before),
        "valid_to": _iso(not_after),
        "days_remaining": days_remaining(not_after, now),
        "expired": bool(leaf.has_expired()),
        "subject_alt_names": sans,
        "serial_number": format(leaf.get_serial_number(), "X"),
        "fingerprint": fingerprint(leaf),
        "chain": build_chain(chain or [leaf]),
        "self_signed": (not trusted) and subject.get_components() == issuer.get_components(),
        "wildcard": is_wildcard(subject.commonName, sans),
    }


def _strict_handshake(domain: str, timeout: float) -> Tuple[bool, Optional[str]]:
    ctx = ssl.create_default_context()
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    try:
        with socket.create_connection((domain, TLS_PORT), timeout=timeout) as sock:
            with ctx.wrap_socket(sock, server_hostname=domain):
                return True, None
    except ssl.SSLCertVerificationError as exc:
        return False, exc.verify_message or str(exc)
    except ssl.SSLError as exc:
        return False, str(exc)


def _unverified_handshake(domain: str, timeout: float) -> Tuple[crypto.X509, List[crypto.X509], Optional[str]]:
    ctx = SSL.Context(SSL.TLS_CLIENT_METHOD)
    ctx.set_verify(SSL.VERIFY_NONE, lambda *args: True)
    deadline_at = time.monotonic() + timeout
    with socket.create_connection((domain, TLS_PORT), timeout=timeout) as sock:
        conn = SSL.Connection(ctx, sock)
        conn.set_tlsext_host_name(domain.encode("idna"))
        conn.set_connect_state()
        while True:
            try:
                conn.do_handshake()
                break
            except (SSL.WantReadError, SSL.WantWriteError) as exc:
                remaining = deadline_at - time.monotonic()
                if remaining <= 0:
                    raise ProbeTimeout("TLS handshake timed out") from None
                if isinstance(exc, SSL.WantReadError):
                    select.select([sock], [], [], remaining)
                else:
                    select.select([], [sock], [], remaining)
        leaf = conn.get_peer_certificate()
        chain = conn.get_peer_cert_chain() or []
        protocol = conn.get_protocol_version_name()
        try:
            conn.shutdown()
        except SSL.Error:
            pass
    if leaf is None:
        raise SSL.Error("Server presented no certificate")
    return leaf, list(chain), protocol


def inspect(domain: str, timeout: float) -> Dict[str, Any]:
    try:
        trusted, strict_error = _strict_handshake(domain, timeout)
    except socket.gaierror:
        raise ConnectionError("Domain not found or does not exist") from None
    except ConnectionRefusedError:
        raise ConnectionError("Connection refused - no SSL certificate on port 443") from None
    except socket.timeout:
        raise ProbeTimeout("SSL check timeout - server did not respond") from None

    leaf, chain, protocol = _unverified_handshake(domain, timeout)
    summary = summarize_certificate(domain, leaf, chain, trusted, strict_error)
    summary["protocol"] = protocol
    return summary


async def probe(domain: str, deadline: float = 10.0, io_executor: Optional[Executor] = None) -> ProbeResult:
    async def work() -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(io_executor, inspect, domain, deadline)

    return await run_probe(PROBE_NAME, work, deadline)
