"""Typer CLI entrypoint for lite-crawler."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import List, Optional
from urllib.parse import urlparse

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigLocator, CrawlerConfig, load_config
from .crawler import Crawler, CrawlStats
from .engine import Transport
from .errors import ValidationError
from .logging_conf import configure_logging, crawler_log_path, tail_log

app = typer.Typer(
    help="lite-crawler command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Inspect crawler settings", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect crawler logs", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    locator: ConfigLocator
    verbose: bool = False
    transport: Transport | None = None


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(locator=ConfigLocator(), verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def is_url(value: str) -> bool:
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def _validate_urls(urls: List[str]) -> List[str]:
    invalid = [url for url in urls if not is_url(url)]
    if invalid:
        raise typer.BadParameter(
            "invalid URL(s): "
            + ", ".join(invalid)
            + " (include the protocol, e.g. https://example.com)"
        )
    return [url.strip() for url in urls]


def _effective_config(
    state: AppState, config_file: Optional[Path], overrides: dict[str, object]
) -> CrawlerConfig:
    try:
        base = load_config(config_file, locator=state.locator)
    except FileNotFoundError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2) from exc
    except ValidationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2) from exc
    payload = base.model_dump()
    payload.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return CrawlerConfig.model_validate(payload)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _render_results_table(results: dict[str, tuple[str, str]]) -> Table:
    table = Table(title=f"Crawl results · {len(results)} URL(s)", box=box.SIMPLE_HEAD)
    table.add_column("URL", style="cyan", overflow="fold")
    table.add_column("Result")
    table.add_column("Detail", style="dim", overflow="fold")
    for url, (status, detail) in results.items():
        style = "green" if status == "ok" else "red"
        table.add_row(url, f"[{style}]{status}[/{style}]", detail)
    return table


def _render_stats_table(stats: CrawlStats) -> Table:
    table = Table(title="Summary", box=box.MINIMAL_DOUBLE_HEAD, show_header=False)
    table.add_column("Counter", style="dim")
    table.add_column("Value", style="bold")
    for key, value in stats.as_dict().items():
        table.add_row(key, str(value))
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("crawl", help="Fetch the given URLs concurrently and report the outcome.")
def crawl(
    ctx: typer.Context,
    urls: List[str] = typer.Argument(..., help="One or more http(s) URLs."),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="Simultaneous fetches."),
    retries: Optional[int] = typer.Option(None, "--retries", "-r", help="Retries per failed URL."),
    retry_delay: Optional[float] = typer.Option(None, "--retry-delay", help="Seconds between attempts."),
    proxy: Optional[List[str]] = typer.Option(None, "--proxy", "-p", help="Proxy URL, repeatable."),
    proxy_file: Optional[Path] = typer.Option(None, "--proxy-file", help="File with one proxy URL per line."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-request timeout in seconds."),
    config_file: Optional[Path] = typer.Option(None, "--config", help="YAML or JSON settings file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write bodies as JSON lines."),
    max_wait: Optional[float] = typer.Option(None, "--max-wait", help="Give up after N seconds."),
) -> None:
    state = _get_state(ctx)
    targets = _validate_urls(urls)
    config = _effective_config(
        state,
        config_file,
        {
            "concurrency": concurrency,
            "retries": retries,
            "retry_delay": retry_delay,
            "proxies": proxy or None,
            "proxy_file": proxy_file,
            "request_timeout": timeout,
        },
    )

    results: dict[str, tuple[str, str]] = {}
    bodies: list[dict[str, object]] = []
    lock = Lock()

    def handle_success(body: str, url: str) -> None:
        with lock:
            results[url] = ("ok", f"{len(body)} chars")
            bodies.append({"url": url, "length": len(body), "body": body})

    def handle_error(error: BaseException, url: str) -> None:
        with lock:
            results[url] = ("failed", str(error))

    crawler = Crawler.from_config(config, transport=state.transport)
    crawler.on_success(handle_success).on_error(handle_error)
    with crawler:
        crawler.add_tasks(targets).start()
        finished = crawler.wait_until_idle(timeout=max_wait)
        crawler.stop()
        stats = crawler.stats

    if output is not None and bodies:
        output.parent.mkdir(parents=True, exist_ok=True)
        with output.open("w", encoding="utf-8") as stream:
            for record in bodies:
                stream.write(json.dumps(record, ensure_ascii=False) + "\n")
        console.print(f"Wrote {len(bodies)} record(s) to {output}", style="dim")

    console.print(_render_results_table(results))
    console.print(_render_stats_table(stats))
    if not finished:
        console.print("Stopped waiting before every URL finished.", style="yellow")
        raise typer.Exit(code=2)
    if stats.failed:
        raise typer.Exit(code=1)


@config_app.command("show", help="Print the effective settings.")
def config_show(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(None, "--config", help="YAML or JSON settings file."),
) -> None:
    state = _get_state(ctx)
    config = _effective_config(state, config_file, {})
    table = Table(title="Crawler settings", box=box.SIMPLE_HEAD)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", overflow="fold")
    for key, value in config.model_dump(mode="json").items():
        table.add_row(key, json.dumps(value, ensure_ascii=False))
    console.print(table)


@log_app.command("show", help="Print the last lines of the crawler log.")
def log_show(lines: int = typer.Option(50, "--lines", "-n", min=1, help="Number of lines.")) -> None:
    path = crawler_log_path()
    content = tail_log(path, lines)
    if not content:
        console.print(f"No log entries in {path}", style="yellow")
        raise typer.Exit(code=0)
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
