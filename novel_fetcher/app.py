"""Typer CLI entrypoint for novel-fetcher."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigLocator, ConfigRepository, GlobalConfig
from .engine import registered_sites
from .errors import ConfigError, ListReadError
from .logging_conf import available_logs, configure_logging, tail_log
from .orchestrator import Orchestrator, RunSummary
from .ui import UnitProgress

app = typer.Typer(
    help="novel-fetcher 命令行工具：按清单下载并合并小说",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="配置查看与初始化",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="日志查看命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: GlobalConfig


def build_state(verbose: bool, config_path: Path | None = None) -> AppState:
    locator = ConfigLocator(config_path=config_path)
    repository = ConfigRepository(locator)
    configure_logging(verbose=verbose, log_dir=locator.logs_dir)
    try:
        config = repository.load_global_config()
    except ConfigError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2)
    return AppState(repository=repository, config=config)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _apply_overrides(
    config: GlobalConfig,
    *,
    proxy: Optional[str],
    concurrency: Optional[int],
    delay_ms: Optional[int],
    output_dir: Optional[Path],
    title_from_content: bool,
) -> GlobalConfig:
    update: dict = {}
    if proxy is not None:
        update["http"] = config.http.model_copy(update={"proxy": proxy.strip() or None})
    if concurrency is not None:
        update["max_concurrent_fetches"] = concurrency
    if delay_ms is not None:
        update["pacing_delay_ms"] = delay_ms
    if output_dir is not None:
        update["output_dir"] = output_dir
    if title_from_content:
        update["title_from_content"] = True
    if not update:
        return config
    return config.model_copy(update=update)


def _render_results_table(summary: RunSummary) -> Table:
    counts = summary.counts()
    table = Table(
        title=f"运行结果 · 共 {counts['units']} 部 · 成功 {counts['success']} · 失败 {counts['failed']}",
        box=box.SIMPLE_HEAD,
    )
    table.add_column("小说", style="cyan", no_wrap=True)
    table.add_column("状态", style="magenta")
    table.add_column("段数", style="green", justify="right")
    table.add_column("输出 / 错误", overflow="fold")
    for result in summary.results:
        if result.ok:
            table.add_row(result.name, "成功", str(result.parts), str(result.path))
        else:
            table.add_row(
                result.name,
                "[red]失败[/red]",
                str(result.parts),
                escape(f"{result.error_type}: {result.error}"),
            )
    return table


app.add_typer(config_app, name="config", help="查看或初始化配置文件")
app.add_typer(log_app, name="log", help="查看日志文件")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="开启调试日志"),
    config: Optional[Path] = typer.Option(None, "--config", help="配置文件路径（默认 ./novel_fetcher.yaml）"),
) -> None:
    ctx.obj = build_state(verbose, config)


@app.command("run", help="按小说清单下载，每部小说输出一个 txt 文件。")
def run(
    ctx: typer.Context,
    novel_list: Path = typer.Option(
        ...,
        "--novel-list",
        "--novel_list",
        "-n",
        help="小说清单文件路径。",
        dir_okay=False,
    ),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="HTTP/HTTPS 代理地址，传空字符串可禁用。"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", min=1, help="同时进行的网络请求上限。"),
    delay_ms: Optional[int] = typer.Option(None, "--delay-ms", min=0, help="每次成功请求后的间隔（毫秒）。"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", file_okay=False, help="输出目录。"),
    title_from_content: bool = typer.Option(
        False, "--title-from-content", help="未显式命名的小说以正文首行作为文件名。"
    ),
    quiet: bool = typer.Option(False, "--quiet", help="只输出精简结果。"),
) -> None:
    state = _get_state(ctx)
    config = _apply_overrides(
        state.config,
        proxy=proxy,
        concurrency=concurrency,
        delay_ms=delay_ms,
        output_dir=output_dir,
        title_from_content=title_from_content,
    )
    orchestrator = Orchestrator(config)
    progress_enabled = config.enable_progress_bar and not quiet
    try:
        with UnitProgress(enabled=progress_enabled, console=console) as progress:
            summary = orchestrator.run(novel_list, progress=progress)
    except ListReadError as exc:
        console.print(escape(f"无法读取小说清单：{exc}"), style="red")
        if exc.summary is not None and exc.summary.results:
            console.print(_render_results_table(exc.summary))
        raise typer.Exit(code=1)

    if quiet:
        counts = summary.counts()
        console.print(f"合计 -> 成功 {counts['success']}，失败 {counts['failed']}")
        for result in summary.failed:
            console.print(escape(f"{result.name} -> {result.error}"), style="red")
    else:
        console.print(_render_results_table(summary))
    if not summary.ok:
        raise typer.Exit(code=1)


@app.command("sites", help="列出支持的站点及其要求。")
def sites() -> None:
    table = Table(title="支持的站点", box=box.SIMPLE_HEAD)
    table.add_column("名称", style="cyan", no_wrap=True)
    table.add_column("域名", style="green")
    table.add_column("选择器", style="magenta", overflow="fold")
    table.add_column("URL 要求", style="yellow")
    for site in registered_sites():
        table.add_row(site.name, site.domain, site.selector, site.required_marker or "-")
    console.print(table)


@config_app.command("show", help="打印当前生效的配置。")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(f"配置文件：{state.repository.locator.global_config_path()}", style="dim")
    console.print(
        yaml.safe_dump(state.config.model_dump(mode="json"), allow_unicode=True, sort_keys=False),
        markup=False,
    )


@config_app.command("init", help="写出一份默认配置文件。")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="覆盖已存在的配置文件。"),
) -> None:
    state = _get_state(ctx)
    path = state.repository.locator.global_config_path()
    if path.exists() and not force:
        console.print(f"配置文件已存在：{path}（使用 --force 覆盖）", style="yellow")
        raise typer.Exit(code=1)
    written = state.repository.save_global_config(GlobalConfig())
    console.print(f"已写入默认配置：{written}", style="green")


@log_app.command("list", help="列出可用的日志文件。")
def log_list() -> None:
    logs = list(available_logs())
    if not logs:
        console.print("暂未生成任何日志。", style="dim")
        return
    table = Table(title="日志文件", box=box.SIMPLE_HEAD)
    table.add_column("文件名", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="查看指定日志的最近内容。")
def log_show(
    name: str = typer.Argument("fetcher", help="日志名称，如 fetcher 或 error。"),
    lines_count: int = typer.Option(100, "--lines", "-n", min=1, help="显示最近 N 行内容。"),
) -> None:
    matches = [path for path in available_logs() if path.stem == name]
    lines = tail_log(matches[0], lines_count) if matches else []
    if not lines:
        console.print("暂无日志信息。", style="dim")
        return
    console.print(f"{name}.log · 最近 {len(lines)} 行", style="cyan")
    console.print("".join(lines), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
