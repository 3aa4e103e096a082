"""Decoding of DoH JSON answers (application/dns-json).

Brief:
  Google, Cloudflare and Quad9 share one JSON scheme for DoH answers, see
  https://developers.google.com/speed/public-dns/docs/doh/json and
  https://developers.cloudflare.com/1.1.1.1/encryption/dns-over-https/make-api-requests/dns-json/

  Only structural parsing happens here. Whether an answer is usable for a
  given query is decided by the resolver.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional, Union

from dnslib import QTYPE
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import DecodeError


def qtype_code(value: Union[int, str]) -> int:
    """
    Brief: Coerce a record type given as code, numeric string or mnemonic.

    Inputs:
    - value: 28, "28", "AAAA" or "aaaa"

    Outputs:
    - int: dnslib QTYPE code

    Raises:
    - ValueError: for booleans, unknown mnemonics or unsupported types

    Example:
        >>> qtype_code("aaaa")
        28
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid record type {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        code = QTYPE.reverse.get(text.upper())
        if code is None:
            raise ValueError(f"unknown record type {value!r}")
        return code
    raise ValueError(f"invalid record type {value!r}")


def qtype_name(code: int) -> str:
    """Return the mnemonic for a record type code ('TYPE<n>' when unknown)."""
    return QTYPE.forward.get(code, f"TYPE{code}")


class Question(BaseModel):
    name: str = ""  # FQDN with trailing dot
    qtype: int = Field(default=0, alias="type")

    @field_validator("qtype", mode="before")
    @classmethod
    def _coerce_qtype(cls, v: Any) -> int:
        return qtype_code(v)


class Answer(BaseModel):
    """One resource record of the Answer section."""

    name: str = ""  # always matches the question
    rtype: int = Field(default=0, alias="type")
    ttl: int = Field(default=0, alias="TTL")
    data: str = ""

    @field_validator("rtype", mode="before")
    @classmethod
    def _coerce_rtype(cls, v: Any) -> int:
        return qtype_code(v)


class ProviderResponse(BaseModel):
    """
    Brief: Decoded body of one provider answer.

    Inputs (JSON keys):
    - Status: DNS RCODE, 0=NOERROR, 2=SERVFAIL, 3=NXDOMAIN
    - TC, RD, RA, AD, CD: header flags (AD set when DNSSEC validated)
    - Question, Answer, Additional: record sections
    - edns_client_subnet: IP address / scope prefix-length
    - Comment: provider diagnostics, mostly on errors

    Outputs:
    - ProviderResponse instance; unknown keys are ignored.
    """

    status: int = Field(default=0, alias="Status")
    tc: bool = Field(default=False, alias="TC")
    rd: bool = Field(default=False, alias="RD")
    ra: bool = Field(default=False, alias="RA")
    ad: bool = Field(default=False, alias="AD")
    cd: bool = Field(default=False, alias="CD")
    question: List[Question] = Field(default_factory=list, alias="Question")
    answer: List[Answer] = Field(default_factory=list, alias="Answer")
    additional: List[Any] = Field(default_factory=list, alias="Additional")
    edns_client_subnet: Optional[str] = Field(default=None, alias="edns_client_subnet")
    comment: str = Field(default="", alias="Comment")

    @field_validator("comment", mode="before")
    @classmethod
    def _join_comment(cls, v: Any) -> str:
        # Some providers send a list of diagnostic lines.
        if isinstance(v, list):
            return " ".join(str(x) for x in v)
        return "" if v is None else v

    @field_validator("question", "answer", "additional", mode="before")
    @classmethod
    def _null_list(cls, v: Any) -> Any:
        return [] if v is None else v


def parse_response(
    body: Union[bytes, str], provider: Optional[str] = None
) -> ProviderResponse:
    """
    Brief: Decode a DoH JSON body into a ProviderResponse.

    Inputs:
    - body: raw response bytes (or text)
    - provider: provider URL, used in error messages only

    Outputs:
    - ProviderResponse

    Raises:
    - DecodeError: malformed JSON, non-object root or schema mismatch
    """
    where = f" from {provider}" if provider else ""
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise DecodeError(f"json decode http response{where}: {exc}", provider) from exc
    if not isinstance(data, dict):
        raise DecodeError(
            f"json decode http response{where}: expected an object, got "
            f"{type(data).__name__}",
            provider,
        )
    try:
        return ProviderResponse(**data)
    except ValidationError as exc:
        raise DecodeError(
            f"unexpected DoH answer{where}: {exc.error_count()} invalid field(s): "
            + "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ),
            provider,
        ) from exc
