"""
Tests for command-line parsing and the application entry point.
"""

import json
import pytest
import signal
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch

from config import SystemConfig
from site_crawler.main import SiteCrawlerApp, apply_cli_overrides, create_cli_parser, run
from site_crawler.concurrent.models import CrawlReport, CrawlResult
from site_crawler.crawlers.fetcher import FetchResult


@pytest.fixture(autouse=True)
def restore_signal_handlers():
    """SiteCrawlerApp installs SIGINT/SIGTERM handlers; put the originals back."""
    saved = {signum: signal.getsignal(signum) for signum in (signal.SIGINT, signal.SIGTERM)}
    yield
    for signum, handler in saved.items():
        signal.signal(signum, handler)


def parse(*argv):
    return create_cli_parser().parse_args(list(argv))


def make_report(interrupted=False):
    now = datetime.now()
    return CrawlReport(
        seed="https://a.test",
        results=[CrawlResult(url="https://a.test", status_code=200, links=["https://a.test/x"])],
        discovered=2, completed=2, failed=0,
        started_at=now, completed_at=now, interrupted=interrupted,
    )


class TestCliOverrides:
    """Test flag handling on top of loaded configuration."""

    def test_no_flags_leave_config_untouched(self):
        config = apply_cli_overrides(SystemConfig(), parse())

        assert config == SystemConfig()

    def test_crawler_flags(self):
        args = parse("--url", "https://a.test", "--workers", "8", "--deadline", "10",
                     "--no-fragments", "--ext", "jpg, pdf", "--paths", "blog/,help/", "--at-most-once")

        config = apply_cli_overrides(SystemConfig(), args)

        assert config.crawler.url == "https://a.test"
        assert config.crawler.max_workers == 8
        assert config.crawler.request_deadline == 10
        assert config.crawler.ignore_fragments is False
        assert config.crawler.ignored_extensions == ["jpg", "pdf"]
        assert config.crawler.ignored_paths == ["blog/", "help/"]
        assert config.crawler.at_most_once is True

    def test_output_flags(self):
        config = apply_cli_overrides(SystemConfig(), parse("-f", "xml", "-o", "out", "-i"))

        assert config.output.format == "xml"
        assert config.output.file == "out"
        assert config.output.interactive is True

    @pytest.mark.parametrize("argv,expected", [
        (["-v"], "DEBUG"),
        (["-vv"], "TRACE"),
        (["--log-level", "ERROR"], "ERROR"),
        (["-v", "--log-level", "ERROR"], "DEBUG"),
    ])
    def test_verbosity(self, argv, expected):
        config = apply_cli_overrides(SystemConfig(), parse(*argv))

        assert config.log_level == expected

    def test_invalid_format_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            parse("--format", "csv")


class TestSiteCrawlerApp:
    """Test wiring of the application."""

    def test_build_fetcher_applies_filters(self):
        config = SystemConfig()
        config.crawler.ignored_extensions = ["jpg"]
        config.crawler.ignored_paths = ["", "blog/"]
        config.crawler.request_deadline = 9

        fetcher = SiteCrawlerApp(config).build_fetcher()
        try:
            assert fetcher.link_filter.options.ignored_extensions == [".jpg"]
            assert fetcher.link_filter.options.ignored_paths == ["blog/"]
            assert fetcher.client.timeout == 9.0
        finally:
            fetcher.close()

    def test_interactive_controller_reports_state(self):
        config = SystemConfig()
        config.output.interactive = True
        config.crawler.max_workers = 3
        app = SiteCrawlerApp(config)

        controller = app.build_controller(Mock())

        assert app.display is not None
        assert controller.scheduler.config.report_state is True
        assert controller.scheduler.config.max_workers == 3
        assert controller.options.interactive is True

    def test_run_writes_results(self, capsys):
        config = SystemConfig()
        app = SiteCrawlerApp(config)

        with patch.object(SiteCrawlerApp, "_crawl", return_value=make_report()):
            assert app.run() == 0

        out = capsys.readouterr().out
        assert "https://a.test\n\thttps://a.test/x" in out

    def test_interrupted_run_exits_with_signal_code(self, capsys):
        app = SiteCrawlerApp(SystemConfig())

        def interrupted_crawl(self):
            self.controller.interrupt(signal.SIGTERM)
            return make_report(interrupted=True)

        with patch.object(SiteCrawlerApp, "_crawl", interrupted_crawl):
            assert app.run() == 128 + int(signal.SIGTERM)

        assert capsys.readouterr().out == ""

    def test_signal_handler_interrupts_controller(self):
        app = SiteCrawlerApp(SystemConfig())
        app.controller = Mock()
        app._crawling = True

        app._signal_handler(signal.SIGINT, None)

        app.controller.interrupt.assert_called_once_with(signal.SIGINT)

    def test_signal_outside_crawl_raises_keyboard_interrupt(self):
        app = SiteCrawlerApp(SystemConfig())
        app.controller = Mock()

        with pytest.raises(KeyboardInterrupt):
            app._signal_handler(signal.SIGTERM, None)

        assert app.received_signal == signal.SIGTERM
        app.controller.interrupt.assert_not_called()

    def test_signal_before_controller_raises_keyboard_interrupt(self):
        app = SiteCrawlerApp(SystemConfig())

        with pytest.raises(KeyboardInterrupt):
            app._signal_handler(signal.SIGINT, None)


class TestRun:
    """Test exit codes of the entry point."""

    def test_invalid_config_file_exits_1(self, isolated_env, capsys):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            json.dump({"crawler": {"max_workers": 0}}, f)

        assert run(["--config", f.name]) == 1
        assert "configuration error" in capsys.readouterr().err
        Path(f.name).unlink()

    def test_invalid_url_exits_1(self, isolated_env):
        with patch("site_crawler.main.setup_logging"):
            assert run(["--config", "/nonexistent.json", "--url", "bad://a.test"]) == 1

    def test_invalid_worker_count_exits_1(self, isolated_env):
        with patch("site_crawler.main.setup_logging"):
            assert run(["--config", "/nonexistent.json", "--url", "https://a.test", "--workers", "0"]) == 1

    def test_full_run_with_stub_fetcher(self, isolated_env, capsys):
        fetcher = Mock()
        fetcher.fetch.side_effect = lambda url: FetchResult(
            links=["https://a.test/x"] if url == "https://a.test" else [],
            status="200 OK", status_code=200,
        )

        with patch("site_crawler.main.setup_logging"), \
                patch.object(SiteCrawlerApp, "build_fetcher", return_value=fetcher):
            code = run(["--config", "/nonexistent.json", "--url", "https://a.test/", "-f", "json"])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert sorted(entry["url"] for entry in data) == ["https://a.test", "https://a.test/x"]
        fetcher.close.assert_called_once()

    def test_invalid_env_log_level_exits_1(self, isolated_env, capsys):
        isolated_env.setenv("CRAWLER_LOG_LEVEL", "verbose")

        assert run(["--config", "/nonexistent.json", "--url", "https://a.test"]) == 1
        assert "configuration error" in capsys.readouterr().err

    @pytest.mark.parametrize("deadline", ["0", "-1"])
    def test_non_positive_deadline_exits_1(self, isolated_env, capsys, deadline):
        code = run(["--config", "/nonexistent.json", "--url", "https://a.test", "--deadline", deadline])

        assert code == 1
        assert "configuration error" in capsys.readouterr().err

    def test_sigterm_while_writing_output_exits_with_signal_code(self, isolated_env, capsys):
        def write_interrupted(report, filename=None):
            signal.raise_signal(signal.SIGTERM)

        with patch("site_crawler.main.setup_logging"), \
                patch.object(SiteCrawlerApp, "_crawl", return_value=make_report()), \
                patch("site_crawler.main.ReportGenerator.write", side_effect=write_interrupted):
            code = run(["--config", "/nonexistent.json", "--url", "https://a.test"])

        assert code == 128 + int(signal.SIGTERM)
        assert capsys.readouterr().out == ""
