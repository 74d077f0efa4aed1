"""Tests for the mintlify-scrape and docs-search command-line interfaces."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from docs_search.cli import main as search_main
from mintlify_scraper.cli import build_config, main as scrape_main
from mintlify_scraper.config import ConfigError
from mintlify_scraper.models import CodeExample, Document
from mintlify_scraper.output import write_outputs
from mintlify_scraper.scraper import ScraperStats
from mintlify_scraper.session import CheckpointError, CrawlSession, save_checkpoint

BASE = "https://docs.example.com"


def config_options(**overrides):
    options = dict(
        output=None,
        concurrent=None,
        delay=None,
        crawl_depth=None,
        create_zip=False,
        no_follow_links=False,
        resume_dir=None,
        config_file=None,
        no_manifest=False,
        no_interactive=False,
        verbose=False,
    )
    options.update(overrides)
    return options


class TestBuildConfig:
    def test_cli_values(self):
        config = build_config(
            BASE,
            **config_options(output="out", concurrent=5, delay=200, crawl_depth=2, create_zip=True, no_follow_links=True),
        )
        assert config.base_url == BASE
        assert config.output_dir == "out"
        assert config.max_concurrent == 5
        assert config.delay_ms == 200
        assert config.crawl_depth == 2
        assert config.create_zip is True
        assert config.follow_links is False

    def test_config_file_with_overrides(self, tmp_path):
        path = tmp_path / "scraper.json"
        path.write_text(
            json.dumps({"start_urls": [f"{BASE}/docs"], "crawling": {"max_concurrent": 7, "delay_ms": 50}}),
            encoding="utf-8",
        )
        config = build_config(None, **config_options(config_file=str(path), delay=10))
        assert config.base_url == f"{BASE}/docs"
        assert config.max_concurrent == 7
        assert config.delay_ms == 10

    def test_manifest_lookup_on_by_default(self):
        assert build_config(BASE, **config_options()).use_manifest is True
        assert build_config(BASE, **config_options(no_manifest=True)).use_manifest is False

    def test_url_required(self):
        with pytest.raises(ConfigError):
            build_config(None, **config_options())

    def test_resume_reads_base_url(self, tmp_path):
        save_checkpoint(CrawlSession(base_url=BASE), str(tmp_path / ".scraper-progress.json"))
        config = build_config(None, **config_options(resume_dir=str(tmp_path), output="ignored"))
        assert config.base_url == BASE
        assert config.output_dir == str(tmp_path)

    def test_resume_without_checkpoint(self, tmp_path):
        with pytest.raises(CheckpointError):
            build_config(None, **config_options(resume_dir=str(tmp_path)))


class TestScrapeCommand:
    def test_help(self):
        result = CliRunner().invoke(scrape_main, ["--help"])
        assert result.exit_code == 0
        assert "--resume" in result.output
        assert "--crawl-depth" in result.output

    def test_missing_url(self):
        result = CliRunner().invoke(scrape_main, [])
        assert result.exit_code == 1
        assert "documentation URL" in result.output

    def test_runs_scraper(self):
        with patch("mintlify_scraper.cli.MintlifyScraper") as scraper_cls:
            scraper_cls.return_value.run = AsyncMock(return_value=ScraperStats())
            result = CliRunner().invoke(scrape_main, [BASE, "-o", "out", "--concurrent", "2", "--no-interactive"])

        assert result.exit_code == 0
        config = scraper_cls.call_args.args[0]
        assert config.base_url == BASE
        assert config.max_concurrent == 2
        assert config.interactive is False
        assert scraper_cls.call_args.kwargs["resume"] is None

    def test_resume_flag(self, tmp_path):
        save_checkpoint(CrawlSession(base_url=BASE), str(tmp_path / ".scraper-progress.json"))
        with patch("mintlify_scraper.cli.MintlifyScraper") as scraper_cls:
            scraper_cls.return_value.run = AsyncMock(return_value=ScraperStats())
            result = CliRunner().invoke(scrape_main, ["--resume", str(tmp_path)])

        assert result.exit_code == 0
        assert scraper_cls.call_args.kwargs["resume"] is True

    def test_scraper_error_exits_1(self):
        with patch("mintlify_scraper.cli.MintlifyScraper") as scraper_cls:
            scraper_cls.return_value.run = AsyncMock(side_effect=OSError("read-only file system"))
            result = CliRunner().invoke(scrape_main, [BASE])

        assert result.exit_code == 1
        assert "read-only file system" in result.output

    def test_keyboard_interrupt(self):
        with patch("mintlify_scraper.cli.MintlifyScraper") as scraper_cls:
            scraper_cls.return_value.run = AsyncMock(side_effect=KeyboardInterrupt)
            result = CliRunner().invoke(scrape_main, [BASE])

        assert result.exit_code == 0
        assert "Interrupted by user" in result.output


@pytest.fixture
def docs_dir(tmp_path):
    out = tmp_path / "docs"
    documents = [
        Document(
            url=f"{BASE}/guides/authentication",
            path="/guides/authentication",
            title="Authentication",
            content="Use an API key to sign every request.",
            section="guides",
        ),
        Document(
            url=f"{BASE}/api/clients",
            path="/api/clients",
            title="Client library",
            content="Install the client and connect.",
            section="api",
            code_examples=(CodeExample("python", "client.connect()\n"),),
        ),
    ]
    write_outputs(documents, BASE, str(out))
    return out


class TestSearchCommands:
    def test_build_and_query(self, docs_dir):
        runner = CliRunner()
        result = runner.invoke(search_main, ["build", str(docs_dir)])
        assert result.exit_code == 0
        assert "Indexed 2 pages" in result.output

        index = str(docs_dir / "search-index.json")
        result = runner.invoke(search_main, ["query", index, "authentication"])
        assert result.exit_code == 0
        assert "Authentication" in result.output
        assert f"{BASE}/guides/authentication" in result.output

    def test_query_options(self, docs_dir):
        runner = CliRunner()
        index = str(docs_dir / "custom.json")
        runner.invoke(search_main, ["build", str(docs_dir), "--index", index])

        result = runner.invoke(search_main, ["query", index, "client", "--section", "guides"])
        assert "Client library" not in result.output

        result = runner.invoke(search_main, ["query", index, "nothing-matches-this", "--min-score", "5"])
        assert "No results" in result.output

    def test_suggest_and_sections(self, docs_dir):
        runner = CliRunner()
        runner.invoke(search_main, ["build", str(docs_dir)])
        index = str(docs_dir / "search-index.json")

        result = runner.invoke(search_main, ["suggest", index, "auth"])
        assert "authentication" in result.output

        result = runner.invoke(search_main, ["sections", index])
        assert result.output.split() == ["api", "guides"]

    def test_missing_index(self, tmp_path):
        result = CliRunner().invoke(search_main, ["query", str(tmp_path / "none.json"), "x"])
        assert result.exit_code == 1
        assert "No search index" in result.output

    def test_incompatible_index(self, tmp_path):
        path = tmp_path / "old.json"
        path.write_text(json.dumps({"version": "0.9", "documents": [], "idf": []}), encoding="utf-8")
        result = CliRunner().invoke(search_main, ["sections", str(path)])
        assert result.exit_code == 1
        assert "Incompatible index version" in result.output

    def test_build_without_documents(self, tmp_path):
        result = CliRunner().invoke(search_main, ["build", str(tmp_path)])
        assert result.exit_code == 1
