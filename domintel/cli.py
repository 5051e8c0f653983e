from __future__ import annotations

"""Command-line interface for domintel.

This module translates CLI flags into runtime settings, applies the input
gate and runs a report through `domintel.core`.
"""

import argparse
import json
import sys
from typing import List, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .config import load_resolvers, load_settings
from .core import _run_coro_sync, build_report
from .engine.resolver import PROPAGATION_RECORD_TYPES, RecordType
from .engine.runtime import PROBE_NAMES
from .errors import InvalidInputError
from .output import console, err_console, output
from .validation import normalize_domain, ssrf_check
from .version import __version__


def _parse_csv(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def _parse_record_types(value: Optional[str]) -> List[RecordType]:
    if not value:
        return list(PROPAGATION_RECORD_TYPES)
    return [RecordType.parse(part) for part in _parse_csv(value)]


def _parse_probes(value: Optional[str], propagation_only: bool) -> List[str]:
    if propagation_only:
        return []
    if not value:
        return list(PROBE_NAMES)
    names = [part.lower() for part in _parse_csv(value)]
    unknown = [name for name in names if name not in PROBE_NAMES]
    if unknown:
        raise InvalidInputError(f"Unknown probe(s): {', '.join(unknown)} (choose from {', '.join(PROBE_NAMES)})")
    return names


def _run_with_spinner(coro, label: str, silent: bool):
    if silent:
        return _run_coro_sync(coro)
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold cyan]{task.description}"),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        progress.add_task(label, total=None)
        return _run_coro_sync(coro)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint.

    Config layering: CLI options > environment (.env) > built-in defaults.
    """
    parser = argparse.ArgumentParser(
        prog="domintel",
        description=(
            f"domintel v.{__version__} - Domain intelligence: DNS propagation, WHOIS, TLS, hosting, technologies\n"
            "CLI options > environment (.env) > built-in defaults."
        ),
    )
    target_group = parser.add_argument_group("Target")
    target_group.add_argument("-d", "--domain", help="Domain to analyze.")
    target_group.add_argument("--no-validate", help="Skip the private-address check.", action="store_true")

    mode_group = parser.add_argument_group("Checks")
    mode_group.add_argument("--propagation-only", help="Only run the DNS propagation check.", action="store_true")
    mode_group.add_argument("--types", help="Record types for propagation, comma separated (default: A,NS,MX,TXT).")
    mode_group.add_argument("--probes", help=f"Probes to run, comma separated (default: {','.join(PROBE_NAMES)}).")

    runtime_group = parser.add_argument_group("Runtime Overrides (Advanced)")
    runtime_group.add_argument("--resolvers-file", help="JSON list of {name, address, region} resolvers.")
    runtime_group.add_argument("--dns-timeout", help="Per-resolver query deadline in seconds.", type=float)
    runtime_group.add_argument("--timeout", help="Deadline for WHOIS/TLS/HTTP/geo probes in seconds.", type=float)

    output_group = parser.add_argument_group("Output")
    output_group.add_argument("--json", help="JSON-only output.", action="store_true")
    output_group.add_argument("--summary", help="Hide the per-resolver tables.", action="store_true")
    output_group.add_argument("--silent", help="Hide the progress spinner.", action="store_true")
    args = parser.parse_args(argv)

    if not args.domain:
        parser.print_help(sys.stderr)
        return 2

    domain = normalize_domain(args.domain)
    if not domain:
        err_console.print(f"[red]Invalid domain input:[/red] {args.domain}")
        return 2

    try:
        record_types = _parse_record_types(args.types)
        probes = _parse_probes(args.probes, args.propagation_only)
        settings = load_settings()
        if args.resolvers_file:
            settings = settings.override(resolvers=load_resolvers(args.resolvers_file))
        settings = settings.override(dns_timeout=args.dns_timeout, probe_timeout=args.timeout)
    except InvalidInputError as exc:
        err_console.print(f"[red]{exc}[/red]")
        return 2

    if not args.no_validate:
        gate = _run_coro_sync(ssrf_check(domain))
        if not gate.get("safe"):
            err_console.print(f"[red]Invalid domain:[/red] {gate.get('reason') or 'Domain validation failed'}")
            return 2

    report = _run_with_spinner(
        build_report(domain, settings=settings, record_types=record_types, probes=probes),
        f"Analyzing {domain}",
        silent=args.silent or args.json,
    )
    data = report.to_dict()
    if args.json:
        console.print_json(json.dumps(data, default=str))
    else:
        output(data, show_servers=not args.summary)
    return 0
