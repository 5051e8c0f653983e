from __future__ import annotations

"""Terminal rendering helpers for domintel.

This module contains presentation-only logic. It works on the plain dicts
produced by `DomainReport.to_dict()` and performs no network operations.
"""

from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


# Shared layout constants.
KV_FIELD_WIDTH = 24
SERVER_NAME_WIDTH = 22
SERVER_IP_WIDTH = 16
SERVER_STATE_WIDTH = 9


def _table_width() -> int:
    try:
        return max(80, int(console.size.width) - 2)
    except Exception:
        return 100


def _new_table(
    *,
    title: Optional[str] = None,
    box_style: Any = box.SIMPLE,
    show_header: bool = True,
    header_style: Optional[str] = None,
) -> Table:
    return Table(
        title=title,
        box=box_style,
        show_header=show_header,
        header_style=header_style,
        title_justify="left",
        width=_table_width(),
        expand=False,
        pad_edge=False,
    )


def _add_kv_columns(table: Table) -> None:
    value_width = max(24, _table_width() - KV_FIELD_WIDTH - 8)
    table.add_column("Field", style="cyan", width=KV_FIELD_WIDTH, no_wrap=True)
    table.add_column("Value", width=value_width, overflow="fold", no_wrap=False)


def _fmt_optional(value: Any) -> str:
    if value is None or value == "" or value == []:
        return "-"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _fmt_state(state: str) -> str:
    if state == "success":
        return "[green]success[/green]"
    if state == "no_data":
        return "[yellow]no data[/yellow]"
    return "[red]error[/red]"


def _verdict_label(verdict: Dict[str, Any]) -> str:
    status = str(verdict.get("status") or "")
    pct = verdict.get("agreement_percentage", 0)
    if status == "consistent":
        return f"[green]propagated[/green] ({pct}%)"
    if status == "absent":
        return "[green]absent everywhere[/green] (100%)"
    if status == "inconsistent":
        return f"[yellow]propagating[/yellow] ({pct}%)"
    if status == "no_responses":
        return "[red]no responses[/red]"
    return "[red]failed[/red]"


def _group_lines(verdict: Dict[str, Any], limit: int = 4) -> List[str]:
    """One line per value group; every group is listed when answers diverge."""
    lines: List[str] = []
    for group in verdict.get("value_groups") or []:
        values = group.get("values") or []
        shown = ", ".join(values[:limit]) + (f" (+{len(values) - limit})" if len(values) > limit else "")
        lines.append(f"{shown} <- {len(group.get('servers') or [])} server(s)")
    return lines


def output_propagation(propagation: Dict[str, Dict[str, Any]], show_servers: bool = True) -> None:
    summary = _new_table(title="DNS propagation", header_style="bold")
    summary.add_column("Type", width=6, no_wrap=True)
    summary.add_column("Verdict", width=28, no_wrap=True)
    summary.add_column("Responded", width=10, no_wrap=True)
    summary.add_column("Errors", width=7, no_wrap=True)
    summary.add_column("Answers", overflow="fold")
    for rtype, verdict in propagation.items():
        groups = _group_lines(verdict)
        answers = "\n".join(groups) if groups else verdict.get("message") or "-"
        summary.add_row(
            rtype,
            _verdict_label(verdict),
            f"{verdict.get('responded_endpoints', 0)}/{verdict.get('total_endpoints', 0)}",
            str(verdict.get("error_count", 0)),
            answers,
        )
    console.print(summary)

    if not show_servers:
        return
    for rtype, verdict in propagation.items():
        servers = verdict.get("servers") or []
        if not servers:
            continue
        table = _new_table(title=f"{rtype} by resolver", header_style="bold")
        table.add_column("Resolver", width=SERVER_NAME_WIDTH, no_wrap=True)
        table.add_column("IP", width=SERVER_IP_WIDTH, no_wrap=True)
        table.add_column("State", width=SERVER_STATE_WIDTH, no_wrap=True)
        table.add_column("Values", overflow="fold")
        for row in servers:
            detail = _fmt_optional(row.get("values")) if row.get("status") == "success" else _fmt_optional(row.get("error"))
            table.add_row(str(row.get("server")), str(row.get("ip")), _fmt_state(str(row.get("status"))), detail)
        console.print(table)


def _probe_rows(name: str, data: Dict[str, Any]) -> List[List[str]]:
    if name == "whois":
        return [
            ["Registrar", _fmt_optional(data.get("registrar"))],
            ["Root domain", _fmt_optional(data.get("root_domain"))],
            ["Created", _fmt_optional(data.get("created"))],
            ["Updated", _fmt_optional(data.get("updated"))],
            ["Expires", _fmt_optional(data.get("expires"))],
            ["Name servers", _fmt_optional(data.get("name_servers"))],
            ["Status", _fmt_optional(data.get("status"))],
            ["DNSSEC", _fmt_optional(data.get("dnssec"))],
            ["Servers queried", " -> ".join(data.get("servers") or []) or "-"],
        ]
    if name == "tls":
        valid = "[green]yes[/green]" if data.get("valid") else f"[red]no[/red] {_fmt_optional(data.get('strict_error'))}"
        chain = " -> ".join(str(link.get("common_name")) for link in data.get("chain") or [])
        return [
            ["Trusted", valid],
            ["Subject", _fmt_optional((data.get("subject") or {}).get("common_name"))],
            ["Issuer", _fmt_optional((data.get("issuer") or {}).get("organization"))],
            ["Valid to", _fmt_optional(data.get("valid_to"))],
            ["Days remaining", _fmt_optional(data.get("days_remaining"))],
            ["SAN", _fmt_optional(data.get("subject_alt_names"))],
            ["Self-signed / wildcard", f"{bool(data.get('self_signed'))} / {bool(data.get('wildcard'))}"],
            ["Chain", chain or "-"],
        ]
    if name == "hosting":
        provider = data.get("provider") or {}
        location = data.get("location") or {}
        network = data.get("network") or {}
        return [
            ["IP", _fmt_optional(data.get("ip_address"))],
            ["Provider", f"{_fmt_optional(provider.get('name'))} ({_fmt_optional(provider.get('type'))})"],
            ["Location", _fmt_optional([v for v in (location.get("city"), location.get("region"), location.get("country")) if v])],
            ["ASN", _fmt_optional(network.get("asn"))],
            ["Organization", _fmt_optional(network.get("organization"))],
        ]
    if name == "technology":
        rows = [["Fetched", f"{_fmt_optional(data.get('url'))} ({_fmt_optional(data.get('status'))})"]]
        for category, items in (data.get("categories") or {}).items():
            rows.append([category, ", ".join(str(item.get("name")) for item in items)])
        if len(rows) == 1:
            rows.append(["Detected", "-"])
        return rows
    if name == "dns":
        rows = []
        for key in ("a", "aaaa", "ns", "mx", "txt", "caa"):
            items = data.get(key) or []
            rendered = [" ".join(str(v) for v in item.values()) for item in items]
            rows.append([key.upper(), _fmt_optional(rendered)])
        soa = data.get("soa") or {}
        rows.append(["SOA", f"{soa.get('nsname')} serial={soa.get('serial')}" if soa else "-"])
        return rows
    return [[key, _fmt_optional(value)] for key, value in data.items() if not isinstance(value, dict)]


PROBE_TITLES = {
    "dns": "DNS records",
    "whois": "WHOIS",
    "tls": "TLS certificate",
    "hosting": "Hosting",
    "technology": "Technologies",
}


def output_probe(name: str, result: Dict[str, Any]) -> None:
    title = PROBE_TITLES.get(name, name)
    if not result.get("available"):
        console.print(f"[bold]{title}[/bold]: [red]unavailable[/red] ({_fmt_optional(result.get('reason'))})")
        return
    table = _new_table(title=title, show_header=False)
    _add_kv_columns(table)
    for field, value in _probe_rows(name, result.get("data") or {}):
        table.add_row(field, value)
    console.print(table)


def output(report: Optional[Dict[str, Any]], show_servers: bool = True) -> None:
    """Render a full report dict (as produced by `DomainReport.to_dict`)."""
    if not report:
        err_console.print("[red]No report produced.[/red]")
        return
    console.print(
        Panel.fit(
            f"[bold]{report.get('domain')}[/bold]  {report.get('timestamp')}  elapsed {report.get('elapsed')}",
            box=box.ROUNDED,
        )
    )
    propagation = report.get("propagation") or {}
    if propagation:
        output_propagation(propagation, show_servers=show_servers)
    for name, result in (report.get("probes") or {}).items():
        output_probe(name, result)
