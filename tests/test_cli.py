import asyncio
import json
import os
import signal

import pytest

from blog_archive_scraper import cli
from blog_archive_scraper.cli import _cancel_on_sigterm, build_parser, main
from blog_archive_scraper.pipeline import IngestionOrchestrator
from blog_archive_scraper.storage import ArticleStore
from blog_archive_scraper.types import ArticleCandidate, RunResult, RunState

from conftest import FakeRenderSession, SessionFactory, article_html, article_url, listing_html


def _write_config(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        f"storage:\n  output_dir: {tmp_path / 'data'}\n  output_file: articles.csv\n",
        encoding="utf-8",
    )
    return config


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parser_run_options():
    args = build_parser().parse_args(["run", "--limit", "3", "--listing-url", "https://x.example/blog/"])
    assert args.command == "run"
    assert args.limit == 3
    assert args.listing_url == "https://x.example/blog/"


def test_stats_command(tmp_path, capsys):
    ArticleStore(tmp_path / "data" / "articles.csv").create(
        ArticleCandidate(title="Stored", content="word " * 120, url="https://blog.example.com/blogs/stored/")
    )

    assert main(["--config", str(_write_config(tmp_path)), "stats"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {"totalArticles": 1, "unenhancedCount": 1}


class CannedOrchestrator:
    result = RunResult(scraped_count=2, saved_count=2, state=RunState.DONE)
    single = None
    seen = {}

    def __init__(self, cfg, store):
        CannedOrchestrator.seen["limit"] = cfg.article_limit

    async def run_ingestion(self):
        return self.result

    async def extract_single(self, url):
        CannedOrchestrator.seen["url"] = url
        return self.single


def test_run_command_prints_result(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(cli, "IngestionOrchestrator", CannedOrchestrator)

    assert main(["--config", str(_write_config(tmp_path)), "run", "--limit", "2"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["success"] is True
    assert out["savedCount"] == 2
    assert CannedOrchestrator.seen["limit"] == 2


def test_run_command_reports_failure(tmp_path, monkeypatch):
    class Failing(CannedOrchestrator):
        result = RunResult(state=RunState.FAILED, failure="could not start browser")

    monkeypatch.setattr(cli, "IngestionOrchestrator", Failing)
    assert main(["--config", str(_write_config(tmp_path)), "run"]) == 1


def test_scrape_url_without_content_exits_nonzero(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "IngestionOrchestrator", CannedOrchestrator)
    url = "https://blog.example.com/blogs/empty/"
    assert main(["--config", str(_write_config(tmp_path)), "scrape-url", url]) == 1
    assert CannedOrchestrator.seen["url"] == url


def test_bad_selection_order_exits_before_running(tmp_path, monkeypatch):
    config = tmp_path / "config.yaml"
    config.write_text("crawl:\n  selection_order: sideways\n", encoding="utf-8")
    monkeypatch.setattr(cli, "IngestionOrchestrator", None)
    assert main(["--config", str(config), "run"]) == 2


def test_sigterm_cancels_run_and_closes_session(cfg, store):
    listing = cfg.listing_url
    pages = {listing: listing_html(["a", "b"]), article_url("a"): article_html("Post a")}
    session = FakeRenderSession(pages)

    async def terminate_then_hang(seconds):
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.Event().wait()

    orch = IngestionOrchestrator(cfg, store, session_factory=SessionFactory(session), sleep=terminate_then_hang)

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(_cancel_on_sigterm(orch.run_ingestion()))
    assert session.close_calls == 1
    assert store.count() == 1
