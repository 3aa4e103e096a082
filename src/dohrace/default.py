"""Module-level lookup functions backed by a shared default Resolver.

These are conveniences for scripts. Libraries should build their own
Resolver and pass it around instead of relying on this process-wide one.
"""

from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from .records import MX, NS, SRV, IPAddress
from .resolver import DEFAULT_TIMEOUT_MS, Resolver

DEFAULT_PROVIDERS = (
    "https://cloudflare-dns.com/dns-query",
    "https://dns.google/resolve",
    "https://dns.quad9.net:5053/dns-query",
)

_default: Optional[Resolver] = None
_default_lock = threading.Lock()


def get_default_resolver() -> Resolver:
    """Return the shared Resolver, building it on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = Resolver(DEFAULT_PROVIDERS, timeout_ms=DEFAULT_TIMEOUT_MS)
        return _default


def set_default_resolver(resolver: Optional[Resolver]) -> Optional[Resolver]:
    """
    Brief: Replace the shared Resolver.

    Inputs:
    - resolver: new default, or None to rebuild lazily on next use

    Outputs:
    - the previous default (not closed)
    """
    global _default
    with _default_lock:
        previous, _default = _default, resolver
        return previous


def lookup_a(host: str) -> List[Optional[IPAddress]]:
    return get_default_resolver().lookup_a(host)


def lookup_aaaa(host: str) -> List[Optional[IPAddress]]:
    return get_default_resolver().lookup_aaaa(host)


def lookup_ip(host: str) -> List[Optional[IPAddress]]:
    return get_default_resolver().lookup_ip(host)


def lookup_cname(host: str) -> str:
    return get_default_resolver().lookup_cname(host)


def lookup_ns(name: str) -> List[NS]:
    return get_default_resolver().lookup_ns(name)


def lookup_txt(name: str) -> List[str]:
    return get_default_resolver().lookup_txt(name)


def lookup_addr(addr: str) -> List[str]:
    return get_default_resolver().lookup_addr(addr)


def lookup_srv(service: str, proto: str, name: str) -> Tuple[str, List[SRV]]:
    return get_default_resolver().lookup_srv(service, proto, name)


def lookup_mx(name: str) -> List[MX]:
    return get_default_resolver().lookup_mx(name)
