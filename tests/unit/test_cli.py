"""CLI 命令测试（不启动浏览器）"""

import asyncio
import json

from typer.testing import CliRunner

from adaptspider.cli import app
from adaptspider.knowledge import KnowledgeStore, TrapRegistry

runner = CliRunner()


def test_stats_empty_store(tmp_path):
    result = runner.invoke(app, ["stats", "--store", str(tmp_path / "learning.json")])

    assert result.exit_code == 0
    assert "知识库为空" in result.output


def test_stats_with_records(tmp_path):
    path = tmp_path / "learning.json"
    store = KnowledgeStore(path)
    asyncio.run(store.record_success("email", ['a[href^="mailto:"]'], "www.facebook.com/acme"))

    result = runner.invoke(app, ["stats", "--store", str(path)])

    assert result.exit_code == 0
    assert "知识库为空" not in result.output


def test_traps_for_host(tmp_path):
    path = tmp_path / "honeypots.json"
    registry = TrapRegistry(path)
    asyncio.run(registry.add("https://www.facebook.com/acme", ["#trap", '[name="honeypot"]']))

    result = runner.invoke(app, ["traps", "--host", "www.facebook.com", "--store", str(path)])

    assert result.exit_code == 0
    assert json.loads(result.output) == ["#trap", '[name="honeypot"]']


def test_traps_empty(tmp_path):
    result = runner.invoke(app, ["traps", "--store", str(tmp_path / "honeypots.json")])

    assert result.exit_code == 0
    assert "陷阱库为空" in result.output


def test_optimize_empty_store(tmp_path):
    result = runner.invoke(app, ["optimize", "--store", str(tmp_path / "learning.json")])

    assert result.exit_code == 0
    assert "维护完成" in result.output


def test_extract_rejects_invalid_url():
    result = runner.invoke(app, ["extract", "--url", "ftp://acme"])

    assert result.exit_code == 2
