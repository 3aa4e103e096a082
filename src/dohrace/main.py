from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from .config.config_parser import build_resolver, parse_config_file
from .config.logging_config import init_logging
from .errors import DoHError
from .records import IPAddress
from .resolver import Resolver

LOOKUP_TYPES = ("A", "AAAA", "IP", "CNAME", "NS", "TXT", "PTR", "SRV", "MX")

# Printed in place of an address literal the provider sent but that does not parse.
UNPARSEABLE_IP = "<unparseable>"


def _format_ip(ip: Optional[IPAddress]) -> str:
    return UNPARSEABLE_IP if ip is None else str(ip)


def _run_lookup(
    resolver: Resolver, qtype: str, name: str, extra: List[str], timeout: Optional[float]
) -> List[str]:
    """
    Brief: Dispatch one CLI lookup and render the result lines.

    Inputs:
      - resolver: configured Resolver
      - qtype: one of LOOKUP_TYPES
      - name: queried name (or address for PTR)
      - extra: [SERVICE, PROTO] for SRV, otherwise empty
      - timeout: optional deadline in seconds for the race

    Outputs:
      - list[str]: lines to print
    """
    ctx: Dict[str, Any] = {"timeout": timeout}
    if qtype == "A":
        return [_format_ip(ip) for ip in resolver.lookup_a(name, **ctx)]
    if qtype == "AAAA":
        return [_format_ip(ip) for ip in resolver.lookup_aaaa(name, **ctx)]
    if qtype == "IP":
        return [_format_ip(ip) for ip in resolver.lookup_ip(name, **ctx)]
    if qtype == "CNAME":
        return [resolver.lookup_cname(name, **ctx)]
    if qtype == "NS":
        return [ns.host for ns in resolver.lookup_ns(name, **ctx)]
    if qtype == "TXT":
        return resolver.lookup_txt(name, **ctx)
    if qtype == "PTR":
        return resolver.lookup_addr(name, **ctx)
    if qtype == "SRV":
        service, proto = (extra + ["", ""])[:2]
        cname, records = resolver.lookup_srv(service, proto, name, **ctx)
        return [cname] + [
            f"{r.priority} {r.weight} {r.port} {r.target}" for r in records
        ]
    # MX
    return [f"{mx.pref} {mx.host}" for mx in resolver.lookup_mx(name, **ctx)]


def main(argv: List[str] | None = None) -> int:
    """
    Main entry point for the dohrace command line.
    Parses arguments, loads configuration, races the providers and prints
    the answer one record per line.

    Args:
        argv: Command-line arguments.

    Returns:
        An exit code: 0 on success, 1 on lookup or configuration errors.

    Example use:
        CLI:
            dohrace A example.com
            dohrace --provider https://dns.google/resolve SRV example.com ldap tcp
    """
    parser = argparse.ArgumentParser(
        prog="dohrace", description="Race DNS-over-HTTPS JSON providers"
    )
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument(
        "-v",
        "--var",
        action="append",
        default=[],
        metavar="KEY=YAML",
        help="Set a config variable (overrides config vars and environment)",
    )
    parser.add_argument(
        "--provider",
        action="append",
        default=[],
        metavar="URL",
        help="DoH JSON provider URL; repeat to race several (replaces configured providers)",
    )
    parser.add_argument("--timeout-ms", type=int, default=None, help="Per-request timeout")
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Overall deadline in seconds for each lookup",
    )
    parser.add_argument(
        "--strict-types",
        action="store_true",
        default=None,
        help="Query CNAME/NS/MX records instead of TXT for those lookups",
    )
    parser.add_argument("--log-level", default=None, help="debug, info, warn, error")
    parser.add_argument("type", type=str.upper, choices=LOOKUP_TYPES)
    parser.add_argument("name")
    parser.add_argument(
        "srv", nargs="*", metavar="SERVICE PROTO", help="Service and protocol for SRV"
    )
    args = parser.parse_args(argv)

    if args.srv and args.type != "SRV":
        parser.error("SERVICE/PROTO are only valid for SRV lookups")
    if len(args.srv) not in (0, 2):
        parser.error("SRV lookups take both SERVICE and PROTO, or neither")

    try:
        cfg = (
            parse_config_file(args.config, cli_vars=args.var) if args.config else {}
        )
    except (OSError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    init_logging(cfg.get("logging"), level=args.log_level)
    logger = logging.getLogger("dohrace.main")
    if args.config:
        logger.info("Loaded config from %s", args.config)

    try:
        with build_resolver(
            cfg,
            providers=args.provider or None,
            timeout_ms=args.timeout_ms,
            strict_record_types=args.strict_types,
        ) as resolver:
            lines = _run_lookup(resolver, args.type, args.name, args.srv, args.deadline)
    except DoHError as exc:
        logger.debug("Lookup failed: %s", exc)
        print(str(exc), file=sys.stderr)
        return 1

    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
