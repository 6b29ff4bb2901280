"""CLI 入口"""

from __future__ import annotations

import asyncio
import json

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .common.browser import create_browser_session
from .common.config import config
from .common.exceptions import URLValidationError
from .common.logger import get_logger
from .common.validators import validate_url
from .knowledge import AutoMaintenance, KnowledgeStore, TrapRegistry
from .pipeline import DEFAULT_FIELDS, ProfileScraper
from .session import ExtractionSession

# 日志器
logger = get_logger(__name__)

app = typer.Typer(
    name="adaptspider",
    help="AdaptSpider CLI - 自适应提取与知识库维护工具",
    add_completion=False,
)
console = Console()


@app.command("extract")
def extract_command(
    url: str = typer.Option(
        ...,
        "--url",
        "-u",
        help="主页 URL",
    ),
    fields: list[str] = typer.Option(
        [],
        "--field",
        "-f",
        help="要提取的字段（可重复），默认提取全部内置字段",
    ),
    sections: list[str] = typer.Option(
        [],
        "--section",
        "-s",
        help="需要导航进入的区域文本（可重复），例如 About",
    ),
    headless: bool = typer.Option(
        True,
        "--headless/--no-headless",
        help="是否使用无头模式",
    ),
    output: str = typer.Option(
        "",
        "--output",
        "-o",
        help="结果 JSON 输出路径（为空则只打印）",
    ),
):
    """
    打开主页并提取字段

    示例:
        adaptspider extract --url "https://www.facebook.com/acme" -f companyName -f email -s About
    """
    try:
        url = validate_url(url)
    except URLValidationError as e:
        console.print(Panel(f"[red]{escape(str(e))}[/red]", title="参数错误", style="red"))
        raise typer.Exit(2)

    config.ensure_dirs()
    try:
        result = asyncio.run(
            _run_extract(
                url=url,
                fields=fields or [f.value for f in DEFAULT_FIELDS],
                sections=sections,
                headless=headless,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]用户中断[/yellow]")
        raise typer.Exit(130)
    except Exception as e:  # noqa: BLE001
        console.print(Panel(f"[red]{escape(str(e))}[/red]", title="执行错误", style="red"))
        raise typer.Exit(1)

    table = Table(title=f"提取结果 ({result.found}/{len(result.data)})")
    table.add_column("字段", style="cyan")
    table.add_column("值")
    table.add_column("策略", style="magenta")
    for key, value in result.data.items():
        table.add_row(key, escape(value) if value is not None else "[dim]-[/dim]", result.strategies.get(key, ""))
    console.print(table)

    if result.sections:
        console.print(
            "区域: " + ", ".join(f"{name}={'✓' if ok else '✗'}" for name, ok in result.sections.items())
        )

    if output:
        from .common.utils.file_utils import save_json

        if save_json(output, result.model_dump(mode="json")):
            console.print(f"[green]结果已保存到: {output}[/green]")


async def _run_extract(url: str, fields: list[str], sections: list[str], headless: bool):
    scraper = ProfileScraper()
    async with create_browser_session(headless=headless) as browser:
        session = ExtractionSession(browser.driver())
        try:
            return await scraper.scrape(session, url=url, fields=fields, sections=sections)
        finally:
            session.close()


@app.command("stats")
def stats_command(
    store_path: str = typer.Option(
        "",
        "--store",
        help="知识库路径（默认取配置）",
    ),
):
    """查看知识库中每个 (数据类型, URL 模式) 桶的统计"""
    store = KnowledgeStore(store_path or None)
    rows = asyncio.run(store.stats())
    if not rows:
        console.print("[yellow]知识库为空[/yellow]")
        return

    table = Table(title=f"知识库: {store.path}")
    table.add_column("数据类型", style="cyan")
    table.add_column("URL 模式")
    table.add_column("选择器", justify="right")
    table.add_column("正则", justify="right")
    table.add_column("成功率", justify="right")
    table.add_column("尝试", justify="right")
    table.add_column("最佳选择器", style="green")
    for row in sorted(rows, key=lambda r: (r["url_pattern"], r["data_type"])):
        table.add_row(
            row["data_type"],
            row["url_pattern"],
            str(row["selectors"]),
            str(row["patterns"]),
            f"{row['success_ratio']:.0%}",
            str(row["attempts"]),
            escape(row["best"] or ""),
        )
    console.print(table)


@app.command("optimize")
def optimize_command(
    store_path: str = typer.Option(
        "",
        "--store",
        help="知识库路径（默认取配置）",
    ),
):
    """执行一轮维护：剪枝低质量选择器、清理过期记录、生成统计"""
    store = KnowledgeStore(store_path or None)
    report = asyncio.run(AutoMaintenance(store).run_once())
    lines = [
        f"剪枝: {report['pruned']} 条",
        f"清理: {report['cleaned']} 条",
    ]
    if report["recommendations"]:
        lines.append("")
        lines.extend(f"- {item}" for item in report["recommendations"])
    console.print(Panel("\n".join(lines), title="维护完成", style="green"))


@app.command("traps")
def traps_command(
    host: str = typer.Option(
        "",
        "--host",
        help="只查看该 host（或 URL）的陷阱选择器",
    ),
    store_path: str = typer.Option(
        "",
        "--store",
        help="陷阱库路径（默认取配置）",
    ),
):
    """查看陷阱注册表"""
    registry = TrapRegistry(store_path or None)

    if host:
        target = host if "://" in host else f"https://{host}"
        selectors = asyncio.run(registry.get(target))
        console.print(json.dumps(selectors, ensure_ascii=False, indent=2), markup=False, highlight=False)
        return

    counts = asyncio.run(registry.hosts())
    if not counts:
        console.print("[yellow]陷阱库为空[/yellow]")
        return
    table = Table(title=f"陷阱库: {registry.path}")
    table.add_column("Host", style="cyan")
    table.add_column("陷阱数", justify="right")
    for name, count in sorted(counts.items()):
        table.add_row(name, str(count))
    console.print(table)


@app.command("health")
def health_command(
    refresh: bool = typer.Option(
        False,
        "--refresh",
        help="先重新生成统计再评估",
    ),
    store_path: str = typer.Option(
        "",
        "--store",
        help="知识库路径（默认取配置）",
    ),
):
    """查看知识库健康状态"""
    store = KnowledgeStore(store_path or None)

    async def _run():
        if refresh:
            await store.build_insights()
        return await store.system_health()

    health = asyncio.run(_run())
    style = {"healthy": "green", "warning": "yellow", "critical": "red"}.get(health["status"], "white")
    lines = [f"[bold]状态:[/bold] {health['status']}", f"[bold]说明:[/bold] {health['message']}"]
    if "success_ratio" in health:
        lines.append(f"[bold]平均成功率:[/bold] {health['success_ratio']:.0%}")
        lines.append(f"[bold]选择器数:[/bold] {health['total_selectors']}")
    for item in health.get("recommendations", []):
        lines.append(f"- {item}")
    console.print(Panel("\n".join(lines), title="健康状态", style=style))


def main():
    """CLI 入口点

    供 pyproject.toml 中 [project.scripts] 调用。
    """
    app()


if __name__ == "__main__":
    main()
