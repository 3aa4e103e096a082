"""Exception hierarchy for dohrace.

Brief:
  Provider-level failures (TransportError, DecodeError) are only ever raised
  inside a race and collected there. Callers of the lookup API see either a
  result, a ConfigurationError, an AggregateError or a CancelledError.
"""

from __future__ import annotations

from typing import List, Optional, Union


class DoHError(Exception):
    """Base class for every error raised by dohrace."""


class ConfigurationError(DoHError, ValueError):
    """Resolver misconfiguration detected before any network activity."""


class ProviderError(DoHError):
    """
    Brief: Failure of a single provider query.

    Inputs:
    - message: Description of the failure
    - provider: URL of the provider that failed (optional)

    Outputs:
    - Exception instance
    """

    def __init__(self, message: str, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.provider = provider


class TransportError(ProviderError):
    """Network, TLS or HTTP-level failure talking to one provider."""


class DecodeError(ProviderError):
    """A provider body was not a well-formed DoH JSON answer."""


class NoAnswerError(DoHError):
    """A provider answered successfully but carried no usable record."""

    def __init__(self, message: str = "no answer") -> None:
        super().__init__(message)


class QueryError(DoHError):
    """
    Brief: Failure of one logical (domain, record type) query.

    Inputs:
    - domain: Queried domain name
    - qtype: Record type code (dnslib QTYPE value)
    - cause: Underlying reason, an exception or a plain message

    Outputs:
    - Exception instance whose str() reads
      'DoH: query domain <domain> on type <TYPE>: <cause>'
    """

    def __init__(
        self, domain: str, qtype: int, cause: Union[BaseException, str]
    ) -> None:
        # Local import keeps errors importable without pulling pydantic in.
        from .response import qtype_name

        self.domain = domain
        self.qtype = qtype
        self.qtype_name = qtype_name(qtype)
        self.cause = cause
        super().__init__(
            f"DoH: query domain {domain} on type {self.qtype_name}: {cause}"
        )


class AggregateError(QueryError):
    """Every provider failed or abstained; carries each failure message."""

    def __init__(self, domain: str, qtype: int, messages: List[str]) -> None:
        self.messages = list(messages)
        cause = ", ".join(self.messages) if self.messages else NoAnswerError()
        super().__init__(domain, qtype, cause)
        if isinstance(cause, NoAnswerError):
            self.__cause__ = cause


class CancelledError(QueryError):
    """The caller's cancel event or deadline fired before a winner emerged."""
