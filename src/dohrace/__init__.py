"""dohrace package"""

from .default import (
    DEFAULT_PROVIDERS,
    get_default_resolver,
    lookup_a,
    lookup_aaaa,
    lookup_addr,
    lookup_cname,
    lookup_ip,
    lookup_mx,
    lookup_ns,
    lookup_srv,
    lookup_txt,
    set_default_resolver,
)
from .errors import (
    AggregateError,
    CancelledError,
    ConfigurationError,
    DecodeError,
    DoHError,
    NoAnswerError,
    ProviderError,
    QueryError,
    TransportError,
)
from .records import MX, NS, SRV
from .resolver import Resolver

__all__ = [
    "AggregateError",
    "CancelledError",
    "ConfigurationError",
    "DEFAULT_PROVIDERS",
    "DecodeError",
    "DoHError",
    "MX",
    "NS",
    "NoAnswerError",
    "ProviderError",
    "QueryError",
    "Resolver",
    "SRV",
    "TransportError",
    "get_default_resolver",
    "lookup_a",
    "lookup_aaaa",
    "lookup_addr",
    "lookup_cname",
    "lookup_ip",
    "lookup_mx",
    "lookup_ns",
    "lookup_srv",
    "lookup_txt",
    "set_default_resolver",
]
