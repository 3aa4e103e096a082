"""Structured record values returned by the lookup API."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import List, Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass(frozen=True)
class NS:
    """Name server record."""

    host: str


@dataclass(frozen=True)
class MX:
    """Mail exchanger record."""

    host: str
    pref: int


@dataclass(frozen=True)
class SRV:
    """Service location record (RFC 2782)."""

    target: str
    port: int
    priority: int
    weight: int


_UINT16_MAX = 0xFFFF


def _uint16(text: str) -> Optional[int]:
    try:
        value = int(text)
    except ValueError:
        return None
    if value < 0 or value > _UINT16_MAX:
        return None
    return value


def parse_ip(data: str) -> Optional[IPAddress]:
    """
    Brief: Parse an address literal from an A/AAAA answer.

    Inputs:
    - data: dotted IPv4 or colon IPv6 text

    Outputs:
    - IPv4Address / IPv6Address, or None when the literal does not parse.
      Callers keep the None in place instead of dropping the entry.
    """
    try:
        return ipaddress.ip_address(data.strip())
    except ValueError:
        return None


def parse_srv(data: str) -> Optional[SRV]:
    """Parse 'priority weight port target'; None for malformed entries."""
    values = data.split()
    if len(values) < 4:
        return None
    priority = _uint16(values[0])
    weight = _uint16(values[1])
    port = _uint16(values[2])
    if priority is None or weight is None or port is None:
        return None
    return SRV(target=values[3], port=port, priority=priority, weight=weight)


def parse_mx(data: str) -> Optional[MX]:
    """Parse 'preference host'; None for malformed entries."""
    values = data.split()
    if len(values) < 2:
        return None
    pref = _uint16(values[0])
    if pref is None:
        return None
    return MX(host=values[1], pref=pref)


def sort_srv(records: List[SRV]) -> List[SRV]:
    """Order by priority, then by weight within one priority (stable)."""
    return sorted(records, key=lambda r: (r.priority, r.weight))


def sort_mx(records: List[MX]) -> List[MX]:
    return sorted(records, key=lambda r: r.pref)
