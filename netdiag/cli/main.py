"""
Main CLI application using Typer.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Iterable, List, Optional

import questionary
import typer
from pydantic import ValidationError
from questionary import Choice
from rich.console import Console
from rich.markup import escape
from rich.live import Live
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.spinner import Spinner

from netdiag.cli.formatters import (
    format_hops,
    format_ping_report,
    format_probe_result,
    format_scan_results,
    format_services,
    format_url_results,
    print_header,
    print_system_info,
)
from netdiag.core.config import AppConfig, load_config_file
from netdiag.core.detector import SystemDetector
from netdiag.core.errors import NetDiagError
from netdiag.modules.base import HopRecord, ProbeResult, ProbeTarget, Protocol, UrlResult
from netdiag.modules.ping import LatencySampler
from netdiag.modules.ports import ScanSession, parse_port_spec
from netdiag.modules.probe import probe as probe_target
from netdiag.modules.services import ServiceTable
from netdiag.modules.traceroute import HopDiscovery, TraceMode
from netdiag.modules.urls import UrlChecker
from netdiag.storage.exporters import try_export_hops, try_export_scan_results
from netdiag.storage.json_handler import JSONHandler
from netdiag.storage.logger import setup_logging
from netdiag.utils.network import unique_urls

app = typer.Typer(
    name="netdiag",
    help="Network Diagnostics Engine: port scans, probes, traceroute, ping and URL checks",
    add_completion=False,
)

console = Console()


def _init_context(output_dir: Optional[Path], verbose: bool):
    """
    Initialize shared objects: config, logger, detector and system info.
    Uses optional config file (~/.netdiag.yaml or ./.netdiag.yaml) for defaults when CLI does not set values.
    """
    file_cfg = load_config_file()
    file_output = file_cfg.pop("output_dir", None)
    resolved_output = output_dir if output_dir is not None else file_output or Path("output")
    resolved_verbose = verbose or file_cfg.pop("verbose", False)
    try:
        config = AppConfig(
            output_dir=resolved_output,
            verbose=resolved_verbose,
            **file_cfg,
        )
    except ValidationError as e:
        console.print(f"[bold red]Invalid configuration:[/bold red] {e}")
        raise typer.Exit(2)

    logger = setup_logging(config.output_dir, config.verbose)
    detector = SystemDetector()
    system_info = detector.detect_system()

    return config, logger, detector, system_info


def _service_table(config: AppConfig) -> ServiceTable:
    """Built-in services plus the entries from the config file."""
    table = ServiceTable()
    table.update(config.services)
    return table


def _fail(error: NetDiagError) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(2)


def _output_json(records: Iterable) -> None:
    """Print result models as a JSON array with camelCase field names."""
    payload = [r.model_dump(mode="json", by_alias=True) for r in records]
    console.print(json.dumps(payload, indent=2), markup=False, highlight=False, soft_wrap=True)


def _warn_missing_ping(detector: SystemDetector) -> None:
    for tool in detector.check_required_tools(["ping"]):
        console.print(f"[bold yellow]⚠️  {tool.name} not found:[/bold yellow] {tool.suggestion}")


def _run_with_spinner(coro, text: str, enabled: bool = True):
    """Run ``coro`` to completion while showing a spinner."""
    if not enabled:
        return asyncio.run(coro)
    with Live(Spinner("dots", text=f"[dim]{text}[/dim]"), console=console, refresh_per_second=8, transient=True):
        return asyncio.run(coro)


# --------------------------------------------------------------------------- #
# Shared implementations (used by the commands and the interactive menu)
# --------------------------------------------------------------------------- #


def _do_scan(
    config: AppConfig,
    logger,
    host: str,
    ports: List[int],
    protocol: Protocol,
    timeout_ms: int,
    concurrency: int,
    output_format: str = "rich",
    show_all: bool = False,
) -> List[ProbeResult]:
    session = ScanSession(
        host,
        timeout_ms=timeout_ms,
        max_concurrency=concurrency,
        protocol=protocol,
        services=_service_table(config),
    )
    stream = session.stream_ports(ports)

    async def _collect() -> List[ProbeResult]:
        collected: List[ProbeResult] = []
        with Progress(
            TextColumn("[bold cyan]{task.description}[/bold cyan]"),
            BarColumn(bar_width=24),
            TaskProgressColumn(),
            console=console,
            transient=True,
            disable=output_format == "json",
        ) as progress:
            task = progress.add_task("Scanning ports…", total=len(ports))
            async for result in stream:
                collected.append(result)
                progress.advance(task)
        collected.sort(key=lambda r: r.port)
        return collected

    results = asyncio.run(_collect())

    run_dir = config.create_run_dir("port_scan")
    logger.info(f"Created run directory: {run_dir}")
    for name in ("results.csv", "results.json"):
        ok, error = try_export_scan_results(run_dir / name, results)
        if not ok:
            console.print(f"[yellow]Could not write {name}: {error}[/yellow]")
    config.save_metadata(
        run_dir,
        {
            "test_type": "Port Scan",
            "target": host,
            "protocol": protocol.value,
            "ports": len(results),
            "timeout_ms": timeout_ms,
            "max_concurrency": concurrency,
            "high_water_mark": session.high_water_mark,
        },
    )

    if output_format == "json":
        _output_json(results)
    else:
        format_scan_results(host, results, console, show_all=show_all)
        console.print(f"[dim]Results saved to {run_dir}[/dim]")
    return results


def _do_trace(
    config: AppConfig,
    logger,
    host: str,
    mode: TraceMode,
    port: int,
    max_hops: int,
    timeout_ms: int,
    retries: int,
    output_format: str = "rich",
) -> List[HopRecord]:
    discovery = HopDiscovery(
        host,
        port=port,
        max_hops=max_hops,
        timeout_ms=timeout_ms,
        retry_per_hop=retries,
        payload_size=config.payload_size,
    )

    async def _collect() -> List[HopRecord]:
        hops: List[HopRecord] = []
        async for hop in discovery.iter_hops(mode):
            hops.append(hop)
            if output_format != "json":
                console.print(f"[dim]  {escape(str(hop))}[/dim]")
        return hops

    if output_format != "json":
        console.print(f"\n[bold cyan]Tracing route to {host} ({mode.value})...[/bold cyan]\n")
    hops = asyncio.run(_collect())

    run_dir = config.create_run_dir("traceroute")
    logger.info(f"Created run directory: {run_dir}")
    for name in ("hops.csv", "hops.json"):
        ok, error = try_export_hops(run_dir / name, hops)
        if not ok:
            console.print(f"[yellow]Could not write {name}: {error}[/yellow]")
    config.save_metadata(
        run_dir,
        {
            "test_type": "Traceroute",
            "target": host,
            "mode": mode.value,
            "hops": len(hops),
            "max_hops": max_hops,
        },
    )

    if output_format == "json":
        _output_json(hops)
    else:
        format_hops(host, hops, console)
        console.print(f"[dim]Results saved to {run_dir}[/dim]")
    return hops


def _do_ping(
    config: AppConfig,
    logger,
    host: str,
    count: int,
    timeout_ms: int,
    size: int,
    output_format: str = "rich",
):
    sampler = LatencySampler()
    report = _run_with_spinner(
        sampler.sample(host, count=count, timeout_ms=timeout_ms, payload_size=size),
        f"Pinging {host}…",
        enabled=output_format != "json",
    )

    run_dir = config.create_run_dir("ping")
    logger.info(f"Created run directory: {run_dir}")
    JSONHandler(run_dir / "results.json").write([report])
    config.save_metadata(
        run_dir,
        {
            "test_type": "Ping",
            "target": host,
            "count": count,
            "success_count": report.success_count,
            "loss_rate_percent": report.loss_rate_percent,
        },
    )

    if output_format == "json":
        _output_json([report])
    else:
        format_ping_report(report, console)
        console.print(f"[dim]Results saved to {run_dir}[/dim]")
    return report


def _do_check_urls(
    config: AppConfig,
    logger,
    urls: List[str],
    checker: UrlChecker,
    output_format: str = "rich",
) -> List[UrlResult]:
    async def _collect() -> List[UrlResult]:
        collected: List[UrlResult] = []
        with Progress(
            TextColumn("[bold cyan]{task.description}[/bold cyan]"),
            BarColumn(bar_width=24),
            TaskProgressColumn(),
            console=console,
            transient=True,
            disable=output_format == "json",
        ) as progress:
            task = progress.add_task("Checking URLs…", total=len(unique_urls(urls)))
            async for result in checker.stream_all(urls):
                collected.append(result)
                progress.advance(task)
        return collected

    results = asyncio.run(_collect())

    run_dir = config.create_run_dir("url_check")
    logger.info(f"Created run directory: {run_dir}")
    JSONHandler(run_dir / "results.json").write(results)
    config.save_metadata(
        run_dir,
        {
            "test_type": "URL Check",
            "urls": len(results),
            "succeeded": sum(1 for r in results if r.is_success),
        },
    )

    if output_format == "json":
        _output_json(results)
    else:
        format_url_results(results, console)
        console.print(f"[dim]Results saved to {run_dir}[/dim]")
    return results


# --------------------------------------------------------------------------- #
# Interactive menu
# --------------------------------------------------------------------------- #


def show_main_menu() -> str:
    """Display main menu and return user choice (with short descriptions)."""
    console.print("\n[bold cyan]═══════════════════════════════════════[/bold cyan]")
    console.print("[bold cyan]           Main Menu[/bold cyan]")
    console.print("[bold cyan]═══════════════════════════════════════[/bold cyan]\n")

    choices = [
        Choice("Port Scan — Check which TCP/UDP ports are open", value="Port Scan"),
        Choice("Probe — Single TCP/UDP/ICMP/HTTP probe", value="Probe"),
        Choice("Traceroute — Show path and hops to target", value="Traceroute"),
        Choice("Ping — Measure reachability and latency", value="Ping"),
        Choice("URL Check — Reachability and certificate validity of URLs", value="URL Check"),
        Choice("Services — Show the known port/service table", value="Services"),
        Choice("Exit", value="Exit"),
    ]

    return questionary.select("Select a test:", choices=choices).ask()


def _run_interactive(output_dir: Optional[Path], verbose: bool) -> None:
    """Run the interactive menu (default `netdiag` with no command)."""
    print_header(console)
    config, logger, detector, system_info = _init_context(output_dir, verbose)
    print_system_info(system_info, console)

    console.print("\n[bold cyan]Checking for required tools...[/bold cyan]")
    missing_tools = detector.check_required_tools(["ping"])
    if missing_tools:
        console.print("\n[bold yellow]⚠️  Missing Tools:[/bold yellow]")
        for tool in missing_tools:
            console.print(f"  • {tool.name}: {tool.suggestion}")
        console.print("[dim]Ping and traceroute will report errors until it is installed.[/dim]")
    else:
        console.print("[bold green]✓ All required tools available[/bold green]")

    while True:
        choice = show_main_menu()

        if choice is None or choice == "Exit":
            console.print("\n[bold cyan]👋 Thank you for using NetDiag![/bold cyan]")
            logger.info("NetDiag exited normally")
            break

        if choice == "Services":
            format_services(_service_table(config).all_services(), console)
            continue

        try:
            if choice == "URL Check":
                raw = questionary.text("Enter URLs (comma or space separated):").ask()
                if not raw:
                    continue
                urls = raw.replace(",", " ").split()
                checker = UrlChecker(
                    timeout_ms=config.url_timeout_ms,
                    max_concurrency=config.url_max_concurrency,
                    validate_certificate=config.validate_certificate,
                )
                _do_check_urls(config, logger, urls, checker)
                continue

            console.print("[dim]  Examples: 8.8.8.8, 1.1.1.1, example.com, localhost[/dim]")
            target = questionary.text(
                "Enter target IP/hostname:",
                validate=lambda x: len(x.strip()) > 0,
            ).ask()
            if not target:
                continue
            target = target.strip()

            if choice == "Port Scan":
                spec = questionary.select(
                    "Ports:",
                    choices=[
                        Choice("Top 20 common ports", value="top20"),
                        Choice("Top 100 common ports", value="top100"),
                        Choice("Custom list / range", value="custom"),
                    ],
                ).ask()
                if spec is None:
                    continue
                if spec == "custom":
                    spec = questionary.text("Ports (e.g. 22,80,8000-8100):").ask()
                    if not spec:
                        continue
                protocol = questionary.select("Protocol:", choices=["TCP", "UDP"]).ask() or "TCP"
                _do_scan(
                    config,
                    logger,
                    target,
                    parse_port_spec(spec),
                    Protocol(protocol),
                    config.timeout_ms,
                    config.max_concurrency,
                )
            elif choice == "Probe":
                protocol = questionary.select("Protocol:", choices=["TCP", "UDP", "ICMP", "HTTP"]).ask()
                if protocol is None:
                    continue
                port = None
                if protocol in ("TCP", "UDP"):
                    raw_port = questionary.text("Port:", validate=lambda x: x.strip().isdigit()).ask()
                    if not raw_port:
                        continue
                    port = int(raw_port)
                _run_probe(config, target, port, Protocol(protocol), config.timeout_ms, None, "rich")
            elif choice == "Traceroute":
                mode = questionary.select("Mode:", choices=["ICMP", "TCP"]).ask() or "ICMP"
                _do_trace(
                    config,
                    logger,
                    target,
                    TraceMode(mode),
                    80,
                    config.max_hops,
                    config.trace_timeout_ms,
                    config.retry_per_hop,
                )
            elif choice == "Ping":
                _do_ping(config, logger, target, config.ping_count, config.ping_timeout_ms, config.payload_size)
        except NetDiagError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            logger.error(f"{choice} failed: {e}")

        if not questionary.confirm("Run another test?", default=True).ask():
            console.print("\n[bold cyan]👋 Thank you for using NetDiag![/bold cyan]")
            logger.info("NetDiag exited normally")
            break


def _run_probe(
    config: AppConfig,
    host: str,
    port: Optional[int],
    protocol: Protocol,
    timeout_ms: int,
    payload: Optional[bytes],
    output_format: str,
) -> ProbeResult:
    target = ProbeTarget(host=host, port=port, protocol=protocol)
    result = _run_with_spinner(
        probe_target(target, timeout_ms, payload=payload, services=_service_table(config)),
        f"Probing {host}…",
        enabled=output_format != "json",
    )
    if output_format == "json":
        _output_json([result])
    else:
        format_probe_result(host, protocol.value, result, console)
    return result


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.callback(invoke_without_command=True)
def _default(
    ctx: typer.Context,
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for results",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    NetDiag - Network Diagnostics Engine.
    Run with no command for the interactive menu, or use a subcommand for direct tests.
    """
    if version:
        from netdiag import __version__
        console.print(f"netdiag {__version__}")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        _run_interactive(output_dir, verbose)


@app.command()
def scan(
    target: str = typer.Argument(..., help="Target IP or hostname"),
    ports: Optional[str] = typer.Option(
        None,
        "--ports",
        "-p",
        help="Ports to scan: list/ranges like '22,80,8000-8100' or a preset ('top20', 'top100'). Default 1-1024",
    ),
    udp: bool = typer.Option(False, "--udp", "-u", help="Scan UDP instead of TCP"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", "-t", help="Per-port timeout in ms"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="Maximum probes in flight"),
    show_all: bool = typer.Option(False, "--all", "-a", help="List every port, not only open ones"),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for results",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    output_format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: 'rich' (default) or 'json'",
    ),
):
    """
    Scan TCP (or UDP) ports on a host.
    """
    config, logger, _detector, _system_info = _init_context(output_dir, verbose)
    try:
        port_list = parse_port_spec(ports) if ports else list(range(1, 1025))
        protocol = Protocol.UDP if udp else Protocol.TCP
        if output_format != "json":
            console.print(
                f"\n[bold cyan]Scanning {len(port_list)} {protocol.value} port(s) on {target}...[/bold cyan]\n"
            )
        _do_scan(
            config,
            logger,
            target,
            port_list,
            protocol,
            timeout_ms if timeout_ms is not None else config.timeout_ms,
            concurrency if concurrency is not None else config.max_concurrency,
            output_format=output_format,
            show_all=show_all,
        )
    except NetDiagError as e:
        _fail(e)


@app.command()
def probe(
    target: str = typer.Argument(..., help="Target IP, hostname or URL (HTTP)"),
    port: Optional[int] = typer.Argument(None, help="Port (required for TCP/UDP)"),
    protocol: str = typer.Option("tcp", "--protocol", "-P", help="tcp, udp, icmp or http"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", "-t", help="Timeout in ms"),
    payload: Optional[str] = typer.Option(None, "--payload", help="Payload to send (UTF-8 text)"),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for results",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    output_format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: 'rich' (default) or 'json'",
    ),
):
    """
    Run a single probe against one target.
    """
    config, _logger, detector, _system_info = _init_context(output_dir, verbose)
    try:
        proto = Protocol(protocol.upper())
    except ValueError:
        console.print(f"[bold red]Error:[/bold red] Unknown protocol {protocol!r} (use tcp, udp, icmp or http)")
        raise typer.Exit(2)
    if proto == Protocol.ICMP:
        _warn_missing_ping(detector)

    try:
        _run_probe(
            config,
            target,
            port,
            proto,
            timeout_ms if timeout_ms is not None else config.timeout_ms,
            payload.encode("utf-8") if payload else None,
            output_format,
        )
    except NetDiagError as e:
        _fail(e)


@app.command()
def trace(
    target: str = typer.Argument(..., help="Target IP or hostname"),
    mode: str = typer.Option("icmp", "--mode", "-m", help="icmp (TTL based) or tcp (single connect)"),
    port: int = typer.Option(80, "--port", "-p", help="Port used in tcp mode"),
    max_hops: Optional[int] = typer.Option(None, "--max-hops", help="Maximum TTL"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", "-t", help="Per-attempt timeout in ms"),
    retries: Optional[int] = typer.Option(None, "--retries", "-r", help="Attempts per hop"),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for results",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    output_format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: 'rich' (default) or 'json'",
    ),
):
    """
    Discover the route to a host.
    """
    config, logger, detector, _system_info = _init_context(output_dir, verbose)
    try:
        trace_mode = TraceMode(mode.upper())
    except ValueError:
        console.print(f"[bold red]Error:[/bold red] Unknown mode {mode!r} (use icmp or tcp)")
        raise typer.Exit(2)
    if trace_mode == TraceMode.ICMP:
        _warn_missing_ping(detector)

    try:
        _do_trace(
            config,
            logger,
            target,
            trace_mode,
            port,
            max_hops if max_hops is not None else config.max_hops,
            timeout_ms if timeout_ms is not None else config.trace_timeout_ms,
            retries if retries is not None else config.retry_per_hop,
            output_format=output_format,
        )
    except NetDiagError as e:
        _fail(e)


@app.command()
def ping(
    target: str = typer.Argument(..., help="Target IP or hostname"),
    count: Optional[int] = typer.Option(None, "--count", "-c", help="Number of echoes"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", "-t", help="Per-echo timeout in ms"),
    size: Optional[int] = typer.Option(None, "--size", "-s", help="Payload size in bytes"),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for results",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    output_format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: 'rich' (default) or 'json'",
    ),
):
    """
    Ping a host and report loss and latency.
    """
    config, logger, detector, _system_info = _init_context(output_dir, verbose)
    _warn_missing_ping(detector)
    try:
        _do_ping(
            config,
            logger,
            target,
            count if count is not None else config.ping_count,
            timeout_ms if timeout_ms is not None else config.ping_timeout_ms,
            size if size is not None else config.payload_size,
            output_format=output_format,
        )
    except NetDiagError as e:
        _fail(e)


@app.command(name="check-urls")
def check_urls(
    urls: Optional[List[str]] = typer.Argument(None, help="URLs to check ('http://' is added when missing)"),
    url_file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-F",
        help="File with one URL per line",
        exists=True,
        dir_okay=False,
    ),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", "-t", help="Per-URL timeout in ms"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="Maximum requests in flight"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    header: Optional[List[str]] = typer.Option(None, "--header", "-H", help="Extra header 'Name: value'"),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="Proxy URL"),
    insecure: bool = typer.Option(False, "--insecure", "-k", help="Accept invalid certificates"),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for results",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    output_format: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: 'rich' (default) or 'json'",
    ),
):
    """
    Check reachability and certificate validity of many URLs.
    """
    config, logger, _detector, _system_info = _init_context(output_dir, verbose)

    targets = list(urls or [])
    if url_file is not None:
        targets.extend(url_file.read_text(encoding="utf-8").splitlines())
    if not any(t.strip() for t in targets):
        console.print("[bold red]Error:[/bold red] No URLs given")
        raise typer.Exit(2)

    headers = {}
    for item in header or []:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            console.print(f"[bold red]Error:[/bold red] Invalid header {item!r} (expected 'Name: value')")
            raise typer.Exit(2)
        headers[name.strip()] = value.strip()

    try:
        checker = UrlChecker(
            timeout_ms=timeout_ms if timeout_ms is not None else config.url_timeout_ms,
            max_concurrency=concurrency if concurrency is not None else config.url_max_concurrency,
            method=method,
            headers=headers or None,
            proxy=proxy,
            validate_certificate=config.validate_certificate and not insecure,
        )
        _do_check_urls(config, logger, targets, checker, output_format=output_format)
    except NetDiagError as e:
        _fail(e)


@app.command()
def services(
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Look up one port"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="List ports for a service name"),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for results",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
):
    """
    Show the port/service table (built-in entries plus config file entries).
    """
    config, _logger, _detector, _system_info = _init_context(output_dir, verbose)
    table = _service_table(config)
    try:
        if port is not None:
            console.print(f"{port}: {escape(table.lookup(port))}")
        elif name is not None:
            matches = table.ports_for(name)
            if matches:
                console.print(f"{name}: {', '.join(str(p) for p in matches)}")
            else:
                console.print(f"[yellow]No ports registered for {name!r}[/yellow]")
        else:
            format_services(table.all_services(), console)
    except NetDiagError as e:
        _fail(e)
