"""
Rich formatting utilities for CLI output.
"""

from typing import Dict, Iterable, List, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from netdiag.__version__ import __version__
from netdiag.core.detector import SystemInfo
from netdiag.modules.base import HopRecord, HopStatus, PingReport, PortStatus, ProbeResult, UrlResult
from netdiag.modules.ports import count_by_status
from netdiag.modules.traceroute import detect_anomalies, is_reachable

_PORT_STATUS_COLORS = {
    PortStatus.OPEN: "green",
    PortStatus.CLOSED: "red",
    PortStatus.FILTERED: "yellow",
    PortStatus.TIMEOUT: "yellow",
    PortStatus.ERROR: "magenta",
}

_HOP_STATUS_COLORS = {
    HopStatus.SUCCESS: "green",
    HopStatus.TTL_EXPIRED: "white",
    HopStatus.TIMEOUT: "yellow",
    HopStatus.DNS_FAIL: "red",
    HopStatus.ERROR: "magenta",
}


def print_header(console: Console) -> None:
    """Print application header."""
    header_text = f"""
    ╔═══════════════════════════════════════════════════════╗
    ║                                                       ║
    ║        NetDiag - Network Diagnostics Engine           ║
    ║                    Version {__version__:<10}                 ║
    ║                                                       ║
    ╚═══════════════════════════════════════════════════════╝
    """

    console.print(header_text, style="bold cyan")


def print_system_info(system_info: SystemInfo, console: Console) -> None:
    """Print detected system information."""
    table = Table(title="System Information", show_header=False, box=None)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Operating System", system_info.os_type)
    table.add_row("Platform", system_info.platform)
    table.add_row("Python Version", system_info.python_version)
    table.add_row("Hostname", system_info.hostname)

    console.print()
    console.print(table)
    console.print()


def _colored(value: str, color: str) -> str:
    return f"[{color}]{value}[/{color}]"


def format_scan_results(
    host: str,
    results: Sequence[ProbeResult],
    console: Console,
    show_all: bool = False,
) -> None:
    """
    Display a port scan.

    Only open ports are listed unless ``show_all`` is set; the panel always
    carries the per-status counts.
    """
    counts = count_by_status(results)
    open_count = counts[PortStatus.OPEN]
    border = "green" if open_count else "yellow"

    summary = ", ".join(
        f"{_colored(str(count), _PORT_STATUS_COLORS[status])} {status.value.lower()}"
        for status, count in counts.items()
        if count
    )
    content = [
        f"[bold]Target:[/bold] {host}",
        f"[bold]Ports scanned:[/bold] {len(results)}",
        f"[bold]Summary:[/bold] {summary or 'no results'}",
    ]
    console.print()
    console.print(Panel("\n".join(content), title="Port Scan Results", border_style=border, expand=False))

    rows = [r for r in results if show_all or r.status == PortStatus.OPEN]
    if not rows:
        console.print("[dim]No open ports found.[/dim]")
        return

    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Port", style="cyan", justify="right")
    table.add_column("Status")
    table.add_column("Service", style="white")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Error", style="dim")
    for r in rows:
        table.add_row(
            str(r.port),
            _colored(r.status.value, _PORT_STATUS_COLORS[r.status]),
            escape(r.service_name or ""),
            str(r.elapsed_millis),
            escape(r.error_message or ""),
        )
    console.print(table)


def format_probe_result(host: str, protocol: str, result: ProbeResult, console: Console) -> None:
    color = _PORT_STATUS_COLORS[result.status]
    content = [
        f"[bold]Target:[/bold] {host}" + (f":{result.port}" if result.port else ""),
        f"[bold]Protocol:[/bold] {protocol}",
        f"[bold]Status:[/bold] {_colored(result.status.value.upper(), color)}",
        f"[bold]Service:[/bold] {escape(result.service_name or '')}",
        f"[bold]Time:[/bold] {result.elapsed_millis} ms",
    ]
    if result.error_message:
        content.append(f"[bold]Error:[/bold] {escape(result.error_message)}")
    console.print()
    console.print(Panel("\n".join(content), title="Probe Result", border_style=color, expand=False))


def format_hops(host: str, hops: List[HopRecord], console: Console) -> None:
    """Display a route trace with anomalous hops flagged."""
    reachable = is_reachable(hops)
    anomalies = set(detect_anomalies(hops))

    table = Table(title=f"Route to {host}", show_header=True, box=None, padding=(0, 2))
    table.add_column("Hop", style="cyan", justify="right")
    table.add_column("Address", style="white")
    table.add_column("Hostname", style="white")
    table.add_column("Status")
    table.add_column("RTT (ms)", justify="right")
    for position, hop in enumerate(hops, start=1):
        rtt = "*" if hop.round_trip_millis is None else str(hop.round_trip_millis)
        if position in anomalies:
            rtt = _colored(rtt, "yellow")
        table.add_row(
            str(hop.hop_index),
            escape(hop.address),
            escape(hop.hostname or ""),
            _colored(hop.status.value, _HOP_STATUS_COLORS[hop.status]),
            rtt,
        )
    console.print()
    console.print(table)

    verdict = _colored("reached", "green") if reachable else _colored("not reached", "red")
    console.print(f"\n[bold]Destination:[/bold] {verdict} ({len(hops)} hop(s))")


def format_ping_report(report: PingReport, console: Console) -> None:
    if report.success_count == report.sent_count and report.sent_count:
        color = "green"
    elif report.success_count:
        color = "yellow"
    else:
        color = "red"

    content = [
        f"[bold]Target:[/bold] {report.host}",
        f"[bold]Sent:[/bold] {report.sent_count}  "
        f"[bold]Received:[/bold] {report.success_count}  "
        f"[bold]Lost:[/bold] {report.fail_count} ({report.loss_rate_percent:.1f}% loss)",
    ]
    if report.avg_latency is not None:
        content.append(
            f"[bold]Latency min/avg/max:[/bold] "
            f"{report.min_latency}/{report.avg_latency:.1f}/{report.max_latency} ms"
        )
    if report.raw_outputs:
        content.append("")
        content.extend(escape(line) for line in report.raw_outputs)

    console.print()
    console.print(Panel("\n".join(content), title="Ping Results", border_style=color, expand=False))


def format_url_results(results: Iterable[UrlResult], console: Console) -> None:
    table = Table(title="URL Check Results", show_header=True, box=None, padding=(0, 2))
    table.add_column("URL", style="cyan")
    table.add_column("Status", justify="right")
    table.add_column("Cert")
    table.add_column("Size", justify="right")
    table.add_column("IPs", style="white")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Error", style="dim")
    for r in results:
        if r.status_code is None:
            status = _colored("—", "red")
        else:
            status = _colored(str(r.status_code), "green" if r.is_success else "yellow")
        table.add_row(
            escape(r.url),
            status,
            "✓" if r.certificate_valid else "",
            str(r.content_length),
            ", ".join(r.resolved_ips),
            str(r.elapsed_millis),
            escape(r.error or ""),
        )
    console.print()
    console.print(table)


def format_services(services: Dict[int, str], console: Console) -> None:
    table = Table(title="Known Services", show_header=True, box=None, padding=(0, 2))
    table.add_column("Port", style="cyan", justify="right")
    table.add_column("Service", style="white")
    for port in sorted(services):
        table.add_row(str(port), escape(services[port]))
    console.print(table)
