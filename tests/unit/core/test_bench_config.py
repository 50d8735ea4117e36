"""Unit tests for ConfigManager parsing and BenchConfig typing."""

import pytest

from power_bench.core.bench_config import BenchConfig, load_bench_config
from power_bench.core.config_manager import ConfigManager


@pytest.fixture()
def manager():
    return ConfigManager()


def test_parse_comments_quotes_and_blank_lines(tmp_path, manager):
    config_path = tmp_path / "config.txt"
    config_path.write_text(
        "# header\n"
        "\n"
        "sample_interval_ms = 250   # faster\n"
        "samplers = 'cpu_power,gpu_power'\n"
        "not a pair\n",
        encoding="utf-8",
    )

    config = manager.read_config(config_path)

    assert config == {"sample_interval_ms": "250", "samplers": "cpu_power,gpu_power"}


def test_missing_file_yields_empty(tmp_path, manager):
    assert manager.read_config(tmp_path / "absent.txt") == {}


@pytest.mark.asyncio
async def test_read_config_async_matches_sync(tmp_path, manager):
    config_path = tmp_path / "config.txt"
    config_path.write_text("a = 1\nb = yes\n", encoding="utf-8")

    assert await manager.read_config_async(config_path) == manager.read_config(config_path)


def test_typed_getters(manager):
    raw = {"i": "12", "f": "1.5", "b": "On", "bad": "x"}

    assert manager.get_int(raw, "i") == 12
    assert manager.get_int(raw, "bad", 7) == 7
    assert manager.get_float(raw, "f") == 1.5
    assert manager.get_float(raw, "bad", 2.0) == 2.0
    assert manager.get_bool(raw, "b") is True
    assert manager.get_bool(raw, "missing", True) is True
    assert manager.get_str(raw, "missing", "d") == "d"


class TestBenchConfig:
    """Test BenchConfig construction."""

    def test_defaults(self):
        cfg = BenchConfig.from_config({})

        assert cfg == BenchConfig()
        assert cfg.sample_interval_ms == 500
        assert cfg.samplers == ("cpu_power",)
        assert cfg.max_silent_skips == 3
        assert cfg.setup_delays_ms == (2000, 5000)
        assert cfg.ready_timeout_seconds == 30.0

    def test_values_from_mapping(self):
        cfg = BenchConfig.from_config(
            {
                "sample_interval_ms": "250",
                "samplers": "cpu_power, gpu_power",
                "disable_sudo": "true",
                "wait_time_seconds": "2.5",
                "drift_warning_seconds": "5",
                "max_silent_skips": "0",
                "ready_timeout_seconds": "12.5",
            }
        )

        assert cfg.sample_interval_ms == 250
        assert cfg.samplers == ("cpu_power", "gpu_power")
        assert cfg.disable_sudo is True
        assert cfg.wait_time_seconds == 2.5
        assert cfg.drift_warning_seconds == 5.0
        assert cfg.max_silent_skips is None
        assert cfg.ready_timeout_seconds == 12.5

    def test_interval_has_minimum(self):
        assert BenchConfig.from_config({"sample_interval_ms": "0"}).sample_interval_ms == 1

    def test_with_overrides_ignores_none(self):
        cfg = BenchConfig().with_overrides(sample_interval_ms=100, disable_sudo=None)
        assert cfg.sample_interval_ms == 100
        assert cfg.disable_sudo is False

    def test_to_dict(self):
        data = BenchConfig().to_dict()
        assert data["samplers"] == ["cpu_power"]
        assert data["wait_time_seconds"] == 10.0

    @pytest.mark.asyncio
    async def test_load_bench_config(self, tmp_path):
        config_path = tmp_path / "config.txt"
        config_path.write_text("wait_time_seconds = 4\n", encoding="utf-8")

        cfg = await load_bench_config(config_path, ConfigManager())

        assert cfg.wait_time_seconds == 4.0

    def test_shipped_config_matches_defaults(self, project_root, manager):
        shipped = BenchConfig.from_config(manager.read_config(project_root / "config.txt"))
        assert shipped == BenchConfig()
