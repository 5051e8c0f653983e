from __future__ import annotations

"""Website technology fingerprinting from one homepage fetch."""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from .base import ProbeResult, run_probe

logger = logging.getLogger("domintel.probes.fingerprint")

PROBE_NAME = "technology"
MAX_BODY_BYTES = 100_000
PHP_VERSION_RE = re.compile(r"PHP/([\d.]+)")

CATEGORY_KEYS = {
    "CMS": "cms",
    "Frontend": "frontend",
    "Backend": "backend",
    "Server": "server",
    "Library": "libraries",
    "Analytics": "analytics",
    "E-commerce": "ecommerce",
}

# (name, category, body substrings, header substrings as (header, needle)); any hit matches.
SIGNATURES: Tuple[Tuple[str, str, Tuple[str, ...], Tuple[Tuple[str, str], ...]], ...] = (
    ("WordPress", "CMS", ("/wp-content/", "/wp-includes/", "wp-json"), (("x-powered-by", "WordPress"),)),
    ("Drupal", "CMS", ("Drupal", "/sites/default/files/"), (("x-generator", "Drupal"),)),
    ("Joomla", "CMS", ("/components/com_", "Joomla"), ()),
    ("Shopify", "CMS", ("cdn.shopify.com", "myshopify.com"), (("x-shopid", ""),)),
    ("Wix", "CMS", ("wix.com", "parastorage.com"), ()),
    ("Squarespace", "CMS", ("squarespace.com", "static.squarespace"), ()),
    ("Webflow", "CMS", ("webflow.com", "webflow.io"), ()),
    ("Ghost", "CMS", ("ghost.org", "ghost.io"), (("x-powered-by", "Ghost"),)),
    ("React", "Frontend", ("react", "_react", "data-reactroot", "data-reactid", "__REACT", "react-dom"), ()),
    ("Next.js", "Frontend", ("/_next/", "__NEXT_DATA__"), ()),
    ("Vue.js", "Frontend", ("vue.js", "data-v-"), ()),
    ("Nuxt.js", "Frontend", ("nuxt", "/_nuxt/"), ()),
    ("Angular", "Frontend", ("ng-version", "angular"), ()),
    ("Svelte", "Frontend", ("svelte", "_svelte"), ()),
    ("PHP", "Backend", (".php",), (("x-powered-by", "PHP"),)),
    ("Node.js", "Backend", (), (("x-powered-by", "Express"), ("x-powered-by", "Node"))),
    ("ASP.NET", "Backend", ("aspnet",), (("x-powered-by", "ASP.NET"), ("server", "IIS"))),
    ("Python", "Backend", ("django", "flask"), ()),
    ("Ruby on Rails", "Backend", ("rails",), (("x-powered-by", "Ruby"),)),
    ("nginx", "Server", (), (("server", "nginx"),)),
    ("Apache", "Server", (), (("server", "Apache"),)),
    ("Microsoft IIS", "Server", (), (("server", "IIS"),)),
    ("LiteSpeed", "Server", (), (("server", "LiteSpeed"),)),
    ("Cloudflare", "Server", (), (("server", "cloudflare"),)),
    ("jQuery", "Library", ("jquery",), ()),
    ("Bootstrap", "Library", ("bootstrap",), ()),
    ("Tailwind CSS", "Library", ("tailwind", "tw-"), ()),
    ("Font Awesome", "Library", ("font-awesome", "fontawesome"), ()),
    ("Google Analytics", "Analytics", ("google-analytics.com", "gtag", "ga.js"), ()),
    ("Google Tag Manager", "Analytics", ("googletagmanager.com", "GTM-"), ()),
    ("Facebook Pixel", "Analytics", ("facebook.com/tr", "fbq("), ()),
    ("Hotjar", "Analytics", ("hotjar.com",), ()),
    ("WooCommerce", "E-commerce", ("woocommerce", "/wc-"), ()),
    ("Magento", "E-commerce", ("magento", "Mage."), ()),
    ("PrestaShop", "E-commerce", ("prestashop",), ()),
)


def _header_hit(headers: Mapping[str, str], header: str, needle: str) -> bool:
    value = headers.get(header)
    if value is None:
        return False
    return needle in value if needle else True


def detect(headers: Mapping[str, str], html: str) -> Dict[str, Any]:
    """Match signatures against lower-cased header names and raw body text."""
    lowered = {str(k).lower(): str(v) for k, v in headers.items()}
    detected: List[Dict[str, str]] = []
    categories: Dict[str, List[Dict[str, str]]] = {}
    for name, category, needles, header_needles in SIGNATURES:
        hit = any(n in html for n in needles) or any(_header_hit(lowered, h, n) for h, n in header_needles)
        if not hit:
            continue
        label = name
        if name == "PHP":
            match = PHP_VERSION_RE.search(lowered.get("x-powered-by", ""))
            if match:
                label = f"PHP {match.group(1)}"
        item = {"name": label, "category": category}
        detected.append(item)
        categories.setdefault(CATEGORY_KEYS[category], []).append(item)
    return {"detected": detected, "categories": categories, "total": len(detected)}


async def fetch_homepage(client: httpx.AsyncClient, url: str, user_agent: str, timeout: float) -> Dict[str, Any]:
    """GET `url` keeping at most MAX_BODY_BYTES of the body."""
    body = bytearray()
    async with client.stream("GET", url, headers={"User-Agent": user_agent}, timeout=timeout, follow_redirects=True) as response:
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) >= MAX_BODY_BYTES:
                logger.debug("Body of %s truncated at %d bytes", url, MAX_BODY_BYTES)
                break
        return {
            "url": str(response.url),
            "status": response.status_code,
            "headers": dict(response.headers),
            "html": bytes(body[:MAX_BODY_BYTES]).decode("utf-8", errors="ignore"),
        }


async def fetch_with_fallback(client: httpx.AsyncClient, domain: str, user_agent: str, timeout: float) -> Dict[str, Any]:
    try:
        return await fetch_homepage(client, f"https://{domain}/", user_agent, timeout)
    except httpx.HTTPError as exc:
        logger.debug("HTTPS fetch of %s failed (%s), trying HTTP", domain, exc.__class__.__name__)
    return await fetch_homepage(client, f"http://{domain}/", user_agent, timeout)


async def probe(
    domain: str,
    deadline: float = 10.0,
    client: Optional[httpx.AsyncClient] = None,
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
) -> ProbeResult:
    async def work() -> Dict[str, Any]:
        if client is not None:
            page = await fetch_with_fallback(client, domain, user_agent, deadline)
        else:
            async with httpx.AsyncClient(verify=False, timeout=deadline) as own_client:
                page = await fetch_with_fallback(own_client, domain, user_agent, deadline)
        result = detect(page["headers"], page["html"])
        result.update({"domain": domain, "url": page["url"], "status": page["status"]})
        return result

    return await run_probe(PROBE_NAME, work, deadline)
