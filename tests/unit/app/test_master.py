"""Unit tests for the power-bench command line."""

import asyncio
import io
import json
import logging

import pytest

from power_bench.app import master
from power_bench.core.bench_config import BenchConfig
from power_bench.progress.status_line import CLEAR_LINE, LiveStatusLine
from power_bench.telemetry.errors import PrivilegeError
from power_bench.telemetry.models import compute_energy_result
from power_bench.telemetry.tracker import ReadySignal


class StubTracker:
    def __init__(self, samples, interval_ms, *, silent=False):
        self.ready = ReadySignal()
        if not silent:
            self.ready.resolve()
        self.samples = samples
        self.interval_ms = interval_ms

    async def stop_tracking(self):
        return compute_energy_result(self.samples, self.interval_ms)


@pytest.fixture
def captured_options(monkeypatch):
    """Replace start_tracking; samples come from the list stored under 'samples'."""
    state = {"samples": [100, 300], "options": None, "silent": False}

    async def fake_start(options):
        state["options"] = options
        return StubTracker(state["samples"], options.interval_ms, silent=state["silent"])

    monkeypatch.setattr(master, "start_tracking", fake_start)
    return state


@pytest.fixture
def quiet_logging(monkeypatch):
    monkeypatch.setattr(master, "setup_cli_logging", lambda args, **kwargs: None)


class TestBuildParser:
    """Test argument parsing."""

    def test_track_defaults(self):
        args = master.build_parser().parse_args(["track"])

        assert args.command == "track"
        assert args.duration == 10.0
        assert args.interval is None
        assert args.samplers is None
        assert args.disable_sudo is None
        assert args.windows == []
        assert args.as_json is False
        assert args.log_level == "info"
        assert args.console_output is True

    def test_repeatable_options(self):
        args = master.build_parser().parse_args(
            ["--no-console", "track", "--sampler", "cpu_power", "--sampler", "gpu_power",
             "--window", "a", "--window", "b", "--no-sudo"]
        )

        assert args.samplers == ["cpu_power", "gpu_power"]
        assert args.windows == ["a", "b"]
        assert args.disable_sudo is True
        assert args.console_output is False

    def test_command_required(self):
        with pytest.raises(SystemExit):
            master.build_parser().parse_args([])


class TestRunTrack:
    """Test run_track against a stub tracker."""

    @pytest.mark.asyncio
    async def test_cli_overrides_config(self, captured_options):
        args = master.build_parser().parse_args(
            ["track", "--duration", "0", "--interval", "250", "--sampler", "gpu_power", "--no-sudo"]
        )

        assert await master.run_track(args, BenchConfig()) == 0

        options = captured_options["options"]
        assert options.sample_interval_ms == 250
        assert options.samplers == ("gpu_power",)
        assert options.disable_sudo is True

    @pytest.mark.asyncio
    async def test_config_used_when_no_flag(self, captured_options):
        args = master.build_parser().parse_args(["track", "--duration", "0"])

        await master.run_track(args, BenchConfig(sample_interval_ms=1000, disable_sudo=True))

        assert captured_options["options"].sample_interval_ms == 1000
        assert captured_options["options"].disable_sudo is True

    @pytest.mark.asyncio
    async def test_no_data_returns_one(self, captured_options):
        captured_options["samples"] = []
        args = master.build_parser().parse_args(["track", "--duration", "0"])

        assert await master.run_track(args, BenchConfig()) == 1

    @pytest.mark.asyncio
    async def test_sampler_without_readings_does_not_block(self, captured_options, caplog):
        captured_options["samples"] = []
        captured_options["silent"] = True
        args = master.build_parser().parse_args(["track", "--duration", "0"])

        with caplog.at_level(logging.WARNING, logger="power_bench"):
            code = await asyncio.wait_for(
                master.run_track(args, BenchConfig(ready_timeout_seconds=0.05)), timeout=5
            )

        assert code == 1
        assert "No power reading within" in caplog.text

    @pytest.mark.asyncio
    async def test_countdown_drawn_on_given_status_line(self, captured_options):
        stream = io.StringIO()
        status_line = LiveStatusLine(stream, interactive=True)
        args = master.build_parser().parse_args(["track", "--duration", "0"])

        await master.run_track(args, BenchConfig(), status_line)

        assert status_line.text == "[Progress] Step 0/1 complete. ETC: 0s"
        assert "ETC: 0s" in stream.getvalue()
        assert stream.getvalue().endswith(CLEAR_LINE)
        assert not status_line.active

    @pytest.mark.asyncio
    async def test_json_with_windows(self, captured_options, capsys):
        captured_options["samples"] = [9, 2, 4, 6, 8]
        args = master.build_parser().parse_args(
            ["track", "--duration", "0", "--interval", "500", "--dwell", "1",
             "--setup-delay-ms", "500", "--window", "a", "--window", "b", "--json"]
        )

        await master.run_track(args, BenchConfig())

        payload = json.loads(capsys.readouterr().out)
        assert payload["energy"]["sampleCount"] == 5
        assert payload["averagePerSite"] == [
            {"index": 0, "url": "a", "avg": 3.0, "count": 2},
            {"index": 1, "url": "b", "avg": 7.0, "count": 2},
        ]


class TestMain:
    """Test exit codes from main."""

    @pytest.mark.asyncio
    async def test_check_sudo_failure_exits_two(self, monkeypatch, quiet_logging, tmp_path):
        async def refuse():
            raise PrivilegeError("sudo refused")

        monkeypatch.setattr(master, "verify_sudo_access", refuse)

        code = await master.main(["--config", str(tmp_path / "none.txt"), "check-sudo"])

        assert code == 2

    @pytest.mark.asyncio
    async def test_check_sudo_success(self, monkeypatch, quiet_logging, tmp_path):
        async def accept():
            return None

        monkeypatch.setattr(master, "verify_sudo_access", accept)

        assert await master.main(["--config", str(tmp_path / "none.txt"), "check-sudo"]) == 0

    @pytest.mark.asyncio
    async def test_track_reads_config_file(self, captured_options, quiet_logging, tmp_path):
        config_path = tmp_path / "config.txt"
        config_path.write_text("sample_interval_ms = 750\n", encoding="utf-8")

        code = await master.main(["--config", str(config_path), "track", "--duration", "0"])

        assert code == 0
        assert captured_options["options"].sample_interval_ms == 750

    @pytest.mark.asyncio
    async def test_logging_and_countdown_share_status_line(self, monkeypatch, tmp_path):
        seen = {}

        def fake_setup(args, *, status_line=None):
            seen["logging"] = status_line

        async def fake_run_track(args, config, status_line=None):
            seen["track"] = status_line
            return 0

        monkeypatch.setattr(master, "setup_cli_logging", fake_setup)
        monkeypatch.setattr(master, "run_track", fake_run_track)

        await master.main(["--config", str(tmp_path / "none.txt"), "track"])

        assert isinstance(seen["logging"], LiveStatusLine)
        assert seen["track"] is seen["logging"]

    @pytest.mark.asyncio
    async def test_no_console_status_line_is_not_interactive(self, monkeypatch, tmp_path):
        seen = {}

        def fake_setup(args, *, status_line=None):
            seen["logging"] = status_line

        async def fake_run_track(args, config, status_line=None):
            return 0

        monkeypatch.setattr(master, "setup_cli_logging", fake_setup)
        monkeypatch.setattr(master, "run_track", fake_run_track)

        await master.main(["--no-console", "--config", str(tmp_path / "none.txt"), "track"])

        assert seen["logging"].interactive is False
