"""DoH resolver: provider racing and per-record-type decoding.

Brief:
  Resolver.query() sends the same question to every configured provider at
  once and returns the data strings of the first usable answer. The lookup_*
  methods sit on top of it and turn those strings into typed records.

Inputs:
  - providers: DoH JSON endpoint URLs
  - a shared requests.Session

Outputs:
  - lists of strings, ip addresses, NS/MX/SRV records

Notes:
  - Providers that fail are only reported once every provider has either
    failed or answered without a usable record (AggregateError).
  - Losing providers are abandoned, not awaited; their results are dropped.
"""

from __future__ import annotations

import ipaddress
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Tuple, Union

import requests
from dnslib import QTYPE

from .errors import (
    AggregateError,
    CancelledError,
    ConfigurationError,
    ProviderError,
    QueryError,
)
from .records import (
    MX,
    NS,
    SRV,
    IPAddress,
    parse_ip,
    parse_mx,
    parse_srv,
    sort_mx,
    sort_srv,
)
from .response import ProviderResponse, qtype_code, qtype_name
from .transport import doh_json_query

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000

# Upper bound on how long the race waits before re-checking the cancel event.
_POLL_INTERVAL = 0.05


def strip_quotes(data: str) -> str:
    """
    Brief: Drop one pair of surrounding double quotes.

    Inputs:
    - data: answer data string

    Outputs:
    - str: data without the enclosing quote pair, unchanged otherwise

    Example:
        >>> strip_quotes('"dohtest"')
        'dohtest'
        >>> strip_quotes('dohtest')
        'dohtest'
    """
    if len(data) >= 2 and data[0] == '"' and data[-1] == '"':
        # Google and Quad9 quote TXT payloads.
        return data[1:-1]
    return data


def extract_data(resp: ProviderResponse, qtype: int) -> List[str]:
    """Return cleaned data of answers matching qtype with a non-zero TTL."""
    return [
        strip_quotes(ans.data)
        for ans in resp.answer
        if ans.rtype == qtype and ans.ttl != 0
    ]


def srv_target(service: str, proto: str, name: str) -> str:
    """Build the RFC 2782 query name, or name itself when both parts are empty."""
    if service == "" and proto == "":
        return name
    return f"_{service}._{proto}.{name}"


def _reverse_name(addr: str) -> str:
    try:
        return ipaddress.ip_address(addr).reverse_pointer
    except ValueError:
        return addr


class Resolver:
    """
    Brief: Races DoH JSON providers and decodes their answers.

    Inputs:
    - providers: provider URLs; the order does not matter for racing
    - session: optional requests.Session shared by every provider call;
      one is created (and closed by close()) when omitted
    - timeout_ms: per-request transport timeout
    - strict_record_types: when False, CNAME/NS/MX lookups ask providers
      for TXT records; when True they ask for CNAME/NS/MX
    - headers: optional extra request headers

    Outputs:
    - Resolver instance, usable as a context manager

    Example:
        >>> with Resolver(["https://dns.google/resolve"]) as r:  # doctest: +SKIP
        ...     r.lookup_a("example.com")
    """

    def __init__(
        self,
        providers: Iterable[str],
        session: Optional[requests.Session] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        strict_record_types: bool = False,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        if isinstance(providers, str):
            providers = [providers]
        self.providers: Tuple[str, ...] = tuple(str(p) for p in providers)
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.timeout_ms = int(timeout_ms)
        self.strict_record_types = bool(strict_record_types)
        self.headers = dict(headers or {})

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "Resolver":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Resolver(providers={list(self.providers)!r}, timeout_ms={self.timeout_ms})"

    def _query_provider(self, url: str, domain: str, qtype: int) -> ProviderResponse:
        return doh_json_query(
            self.session,
            url,
            domain,
            qtype,
            timeout_ms=self.timeout_ms,
            headers=self.headers,
        )

    def query(
        self,
        domain: str,
        qtype: Union[int, str],
        *,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> List[str]:
        """
        Brief: Race every provider for (domain, qtype).

        Inputs:
        - domain: name to resolve
        - qtype: dnslib QTYPE code or mnemonic
        - cancel: optional event; setting it aborts the race
        - timeout: optional deadline in seconds for the whole race

        Outputs:
        - list[str]: non-empty data strings of the winning answer, quotes
          stripped, in the provider's answer order

        Raises:
        - ConfigurationError: no providers, or an unknown record type
        - CancelledError: cancel/deadline fired before a winner
        - AggregateError: every provider failed or abstained
        """
        try:
            code = qtype_code(qtype)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        if not self.providers:
            raise ConfigurationError("no provider")

        deadline = None if timeout is None else time.monotonic() + timeout

        def _interrupted() -> Optional[str]:
            if cancel is not None and cancel.is_set():
                return "cancelled"
            if deadline is not None and time.monotonic() >= deadline:
                return "deadline exceeded"
            return None

        reason = _interrupted()
        if reason:
            raise CancelledError(domain, code, reason)

        errors: List[str] = []
        executor = ThreadPoolExecutor(
            max_workers=len(self.providers), thread_name_prefix="dohrace"
        )
        try:
            pending: Dict[Future, str] = {
                executor.submit(self._query_provider, url, domain, code): url
                for url in self.providers
            }
            while pending:
                wait_s: Optional[float] = None
                if cancel is not None:
                    wait_s = _POLL_INTERVAL
                if deadline is not None:
                    remaining = max(0.0, deadline - time.monotonic())
                    wait_s = remaining if wait_s is None else min(wait_s, remaining)
                done, _ = wait(pending, timeout=wait_s, return_when=FIRST_COMPLETED)

                reason = _interrupted()
                if reason:
                    logger.debug("Query %s %s %s", domain, qtype_name(code), reason)
                    raise CancelledError(domain, code, reason)

                for fut in done:
                    url = pending.pop(fut)
                    try:
                        resp = fut.result()
                    except ProviderError as e:
                        logger.debug("Provider %s failed for %s: %s", url, domain, e)
                        errors.append(str(e))
                        continue
                    except Exception as e:
                        logger.debug("Provider %s raised for %s: %r", url, domain, e)
                        errors.append(f"{url}: {e}")
                        continue

                    if resp.status != 0:
                        logger.debug(
                            "Provider %s returned status %d for %s %s %s",
                            url,
                            resp.status,
                            domain,
                            qtype_name(code),
                            resp.comment,
                        )
                        continue

                    datas = extract_data(resp, code)
                    if not datas:
                        logger.debug(
                            "Provider %s had no %s answer for %s",
                            url,
                            qtype_name(code),
                            domain,
                        )
                        continue

                    logger.debug(
                        "Provider %s won %s %s with %d record(s)",
                        url,
                        domain,
                        qtype_name(code),
                        len(datas),
                    )
                    return datas
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.warning(
            "All providers failed for %s %s: %s",
            domain,
            qtype_name(code),
            ", ".join(errors) or "no answer",
        )
        raise AggregateError(domain, code, errors)

    def _indirect_type(self, strict_code: int) -> int:
        # CNAME/NS/MX historically go out as TXT queries.
        return strict_code if self.strict_record_types else QTYPE.TXT

    def lookup_a(self, name: str, **ctx) -> List[Optional[IPAddress]]:
        """IPv4 addresses of name; unparseable literals come back as None."""
        return [parse_ip(d) for d in self.query(name, QTYPE.A, **ctx)]

    def lookup_aaaa(self, name: str, **ctx) -> List[Optional[IPAddress]]:
        """IPv6 addresses of name; unparseable literals come back as None."""
        return [parse_ip(d) for d in self.query(name, QTYPE.AAAA, **ctx)]

    def lookup_ip(self, name: str, **ctx) -> List[Optional[IPAddress]]:
        """
        Brief: IPv4 then IPv6 addresses of name.

        Outputs:
        - list: union of both families; succeeds when either lookup succeeds,
          empty when neither yields data nor an error

        Raises:
        - QueryError: the IPv4 lookup error when both lookups fail

        Notes:
        - timeout= is one deadline shared by both lookups; the IPv6 race
          only gets what the IPv4 race left over.
        """
        timeout = ctx.pop("timeout", None)
        deadline = None if timeout is None else time.monotonic() + timeout
        res: List[Optional[IPAddress]] = []
        errs: List[QueryError] = []
        for lookup in (self.lookup_a, self.lookup_aaaa):
            if deadline is not None:
                ctx["timeout"] = max(0.0, deadline - time.monotonic())
            try:
                res.extend(lookup(name, **ctx))
            except QueryError as e:
                errs.append(e)
        if res:
            return res
        if errs:
            raise errs[0]
        return res

    def lookup_cname(self, name: str, **ctx) -> str:
        """Canonical name of host (first answer only)."""
        return self.query(name, self._indirect_type(QTYPE.CNAME), **ctx)[0]

    def lookup_ns(self, name: str, **ctx) -> List[NS]:
        datas = self.query(name, self._indirect_type(QTYPE.NS), **ctx)
        return [NS(host=d) for d in datas]

    def lookup_txt(self, name: str, **ctx) -> List[str]:
        return self.query(name, QTYPE.TXT, **ctx)

    def lookup_addr(self, addr: str, **ctx) -> List[str]:
        """
        Brief: Reverse (PTR) lookup.

        Inputs:
        - addr: an IP literal (turned into its in-addr.arpa/ip6.arpa name)
          or a name that is queried as given

        Outputs:
        - list[str]: host names
        """
        return self.query(_reverse_name(addr), QTYPE.PTR, **ctx)

    def lookup_srv(
        self, service: str, proto: str, name: str, **ctx
    ) -> Tuple[str, List[SRV]]:
        """
        Brief: Resolve SRV records of _service._proto.name.

        Inputs:
        - service, proto: e.g. "ldap", "tcp"; both empty queries name directly
        - name: domain

        Outputs:
        - (cname, records): the queried name with a trailing dot, and the
          well-formed records sorted by priority then weight
        """
        target = srv_target(service, proto, name)
        datas = self.query(target, QTYPE.SRV, **ctx)
        records = [rec for rec in (parse_srv(d) for d in datas) if rec is not None]
        return target + ".", sort_srv(records)

    def lookup_mx(self, name: str, **ctx) -> List[MX]:
        """Well-formed MX records of name sorted by preference."""
        datas = self.query(name, self._indirect_type(QTYPE.MX), **ctx)
        records = [rec for rec in (parse_mx(d) for d in datas) if rec is not None]
        return sort_mx(records)
