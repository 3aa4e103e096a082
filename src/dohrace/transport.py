"""Single-provider DoH JSON query over requests."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Dict, Optional

import requests

from .errors import TransportError
from .response import ProviderResponse, parse_response, qtype_name

try:
    DOHRACE_VERSION = importlib.metadata.version("dohrace")
except importlib.metadata.PackageNotFoundError:  # pragma: no cover - source checkout
    DOHRACE_VERSION = "unknown"

DNS_JSON = "application/dns-json"

logger = logging.getLogger(__name__)


def build_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Brief: Headers sent with every provider request.

    Inputs:
    - extra: caller headers; a caller User-Agent (any casing) wins

    Outputs:
    - dict: headers with Accept forced to application/dns-json

    Example:
        >>> build_headers({"user-agent": "x"})["Accept"]
        'application/dns-json'
    """
    hdrs = {k: v for (k, v) in (extra or {}).items() if k.lower() != "accept"}
    if not any(k.lower() == "user-agent" for k in hdrs):
        hdrs["User-Agent"] = f"dohrace/{DOHRACE_VERSION}"
    hdrs["Accept"] = DNS_JSON
    return hdrs


def doh_json_query(
    session: requests.Session,
    url: str,
    domain: str,
    qtype: int,
    *,
    timeout_ms: int = 5000,
    headers: Optional[Dict[str, str]] = None,
) -> ProviderResponse:
    """
    Brief: Perform one DoH JSON GET and decode the answer.

    Inputs:
    - session: shared requests.Session (read-only use, safe across threads)
    - url: provider endpoint, e.g. https://dns.google/resolve
    - domain: name to resolve
    - qtype: dnslib QTYPE code, sent as its mnemonic
    - timeout_ms: connect/read timeout for this request
    - headers: optional extra headers

    Outputs:
    - ProviderResponse

    Notes:
    - Exactly one attempt, no retries.
    - Raises TransportError for network/TLS errors and non-200 statuses.
    - Raises DecodeError when the body is not a DoH JSON answer.
    """
    params = {"name": domain, "type": qtype_name(qtype)}
    logger.debug("GET %s name=%s type=%s", url, domain, params["type"])
    try:
        resp = session.get(
            url,
            params=params,
            headers=build_headers(headers),
            timeout=timeout_ms / 1000.0,
        )
    except requests.exceptions.SSLError as e:
        raise TransportError(f"TLS error from {url}: {e}", url) from e
    except requests.RequestException as e:
        raise TransportError(f"Network error from {url}: {e}", url) from e

    if resp.status_code != 200:
        raise TransportError(f"HTTP {resp.status_code} from {url}: {resp.reason}", url)
    return parse_response(resp.content, provider=url)
