# File: tests/test_cli.py
"""Тесты для CLI (`page_scout.cli`) с использованием click.testing.CliRunner.
Проверяют команды `crawl`, `check`, `config`, `--version`, а также обработку ошибок.
"""
import asyncio
import json

import pytest
from click.testing import CliRunner

import page_scout.cli as cli_module
from page_scout.cli import cli
from page_scout.errors import ComplianceDenied, ResourceFailure
from page_scout.models import ComplianceDecision, CrawlResult, DecisionReason, PageSnapshot

QUIET = ["--log-level", "ERROR"]


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Без configs/default.yaml в рабочей директории – только значения по умолчанию."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def patch_start_crawl(monkeypatch):
    """Патчим start_crawl: возвращаем фиктивный результат без браузера."""
    calls = []

    async def fake_crawl(cfg, request):
        calls.append(request)
        return CrawlResult(
            main_page=PageSnapshot(
                url=request.url, title="Example", links=[], stage_errors={"pdf": "pdf: boom"}
            ),
            linked_pages=[PageSnapshot.failed(f"{request.url}about", "net::ERR_FAILED")],
        )

    monkeypatch.setattr(cli_module, "start_crawl", fake_crawl)
    return calls


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "PageScout" in result.output


def test_show_config(tmp_path):
    cfg_file = tmp_path / "custom.yaml"
    cfg_file.write_text("crawl:\n  max_linked_pages: 4\n", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(cli, [*QUIET, "--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["crawl"]["max_linked_pages"] == 4
    assert data["extraction"]["navigation_timeout"] == 90


def test_broken_config_file(tmp_path):
    cfg_file = tmp_path / "broken.yaml"
    cfg_file.write_text("crawl:\n  nope: 1\n", encoding="utf-8")
    result = CliRunner().invoke(cli, [*QUIET, "--config", str(cfg_file), "config"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_crawl_stdout(patch_start_crawl):
    runner = CliRunner()
    result = runner.invoke(
        cli, [*QUIET, "crawl", "https://example.com/", "--screenshots", "--max-depth", "0"]
    )
    assert result.exit_code == 0
    output = json.loads(result.output)
    assert output["mainPage"]["title"] == "Example"
    assert output["mainPage"]["stageErrors"] == {"pdf": "pdf: boom"}
    assert output["linkedPages"] == [
        {"url": "https://example.com/about", "error": "net::ERR_FAILED"}
    ]
    assert output["legalNotice"].startswith("This data was collected")

    request = patch_start_crawl[0]
    assert request.take_screenshots and not request.generate_pdf
    assert request.max_depth == 0


def test_crawl_json_file(tmp_path):
    out = tmp_path / "out" / "report.json"
    runner = CliRunner()
    result = runner.invoke(cli, [*QUIET, "crawl", "https://example.com/", "--json", str(out)])
    assert result.exit_code == 0
    assert out.exists()
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["mainPage"]["url"] == "https://example.com/"


def test_crawl_html_file(tmp_path):
    out = tmp_path / "report.html"
    runner = CliRunner()
    result = runner.invoke(cli, [*QUIET, "crawl", "https://example.com/", "--html", str(out)])
    assert result.exit_code == 0
    html = out.read_text(encoding="utf-8")
    assert "https://example.com/about" in html
    assert "net::ERR_FAILED" in html


def test_crawl_invalid_option():
    result = CliRunner().invoke(cli, [*QUIET, "crawl", "https://example.com/", "--max-depth", "-1"])
    assert result.exit_code == 1
    assert "Некорректные параметры" in result.output


def test_crawl_denied_exit_code(monkeypatch):
    async def denied(cfg, request):
        raise ComplianceDenied(request.url, ComplianceDecision.deny(DecisionReason.BLOCKED_DOMAIN))

    monkeypatch.setattr(cli_module, "start_crawl", denied)
    result = CliRunner().invoke(cli, [*QUIET, "crawl", "https://facebook.com/"])
    assert result.exit_code == 2
    assert "BLOCKED_DOMAIN" in result.output


def test_crawl_browser_failure(monkeypatch):
    async def broken(cfg, request):
        raise ResourceFailure("Could not start browser: missing executable")

    monkeypatch.setattr(cli_module, "start_crawl", broken)
    result = CliRunner().invoke(cli, [*QUIET, "crawl", "https://example.com/"])
    assert result.exit_code == 1
    assert "Ошибка браузера" in result.output


def test_crawl_timeout(monkeypatch):
    async def slow(cfg, request):
        await asyncio.sleep(2)

    monkeypatch.setattr(cli_module, "start_crawl", slow)
    runner = CliRunner()
    result = runner.invoke(
        cli, [*QUIET, "crawl", "https://example.com/", "--crawl-timeout", "0.2"]
    )
    assert result.exit_code == 1
    assert "не завершён" in result.output


@pytest.mark.parametrize(
    "decision,exit_code",
    [
        (ComplianceDecision.allow(), 0),
        (ComplianceDecision.deny(DecisionReason.ROBOTS_DENIED), 2),
    ],
)
def test_check_command(monkeypatch, decision, exit_code):
    seen = []

    async def fake_check(cfg, url):
        seen.append(url)
        return decision

    monkeypatch.setattr(cli_module, "check_url", fake_check)
    result = CliRunner().invoke(cli, [*QUIET, "check", " https://example.com/page "])
    assert result.exit_code == exit_code
    assert json.loads(result.output) == decision.to_dict()
    assert seen == ["https://example.com/page"]
