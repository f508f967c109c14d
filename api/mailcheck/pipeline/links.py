"""
Link and domain extraction for message inspection.

Links come from two places: linkify matches in the plain-text body
(scheme-less `example.com/path` included) and anchor `href` values in the
HTML body. Only http(s) URLs survive, and each host is reduced to its
registrable domain using the public suffix list.
"""

from typing import Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit

import tldextract
from bs4 import BeautifulSoup
from linkify_it import LinkifyIt

# Bundled public-suffix snapshot only; never fetch the list at runtime.
_SUFFIXES = tldextract.TLDExtract(suffix_list_urls=())

# Fuzzy links on: bare `paypal.com/login` counts, e-mail addresses do not.
_LINKIFY = LinkifyIt(options={"fuzzyLink": True, "fuzzyEmail": False})


def _from_text(text: str) -> List[str]:
    return [m.url for m in _LINKIFY.match(text) or []]


def _from_html(html: str) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    hrefs: List[str] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if href and not href.lower().startswith("mailto:"):
            hrefs.append(href)
    return hrefs


def normalize_url(candidate: str) -> Optional[str]:
    """Return a canonical http(s) URL, or None if the candidate is not one."""
    try:
        parts = urlsplit(candidate.strip())
        host = parts.hostname
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not host:
        return None
    netloc = parts.netloc.rsplit("@", 1)[-1]
    path = parts.path or "/"
    return urlunsplit((scheme, netloc.lower(), path, parts.query, parts.fragment))


def extract_links(text: str = "", html: str = "") -> List[str]:
    """Collect unique http(s) links from text and HTML, in first-seen order."""
    candidates: List[str] = []
    if text:
        candidates.extend(_from_text(text))
    if html:
        candidates.extend(_from_html(html))

    links: List[str] = []
    seen = set()
    for candidate in candidates:
        url = normalize_url(candidate)
        if url and url not in seen:
            seen.add(url)
            links.append(url)
    return links


def registrable_domain(host: str) -> str:
    """
    Reduce a hostname to domain + public suffix (`mail.ebay.co.uk` -> `ebay.co.uk`).

    Hosts without a public suffix (IP literals, `localhost`) are returned as-is.
    """
    host = (host or "").strip().lower().rstrip(".")
    if not host:
        return ""
    ext = _SUFFIXES(host)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return host


def link_domains(links: Iterable[str]) -> List[str]:
    """Unique registrable domains of the given links, in first-seen order."""
    domains: List[str] = []
    for url in links:
        try:
            host = urlsplit(url).hostname or ""
        except ValueError:
            continue
        domain = registrable_domain(host)
        if domain and domain not in domains:
            domains.append(domain)
    return domains
