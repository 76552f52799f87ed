"""Tests for config loading, reload and scheduling in the backend app.

The app module builds a GridChargeApp at import, so CONFIG_PATH points at a
temporary config before the first import.
"""

import importlib

import pytest
import yaml

from core.gridcharge.exceptions import SystemConfigurationError
from core.gridcharge.runtime_failure_tracker import CATEGORY_CONFIGURATION


def make_config(host="evcc.test:7070", interval=300, bands=None):
    evcc = {"host": host}
    if bands is not None:
        evcc["bands"] = bands
    return {"global": {"interval": interval, "debug": False}, "evcc": evcc}


def write_config(path, config):
    path.write_text(yaml.safe_dump(config))


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    write_config(path, make_config())
    monkeypatch.setenv("CONFIG_PATH", str(path))
    monkeypatch.setenv("EVCC_TEST_MODE", "true")
    monkeypatch.delenv("EVCC_HOST", raising=False)
    return path


@pytest.fixture
def app_module(config_file):
    return importlib.import_module("app")


@pytest.fixture
def grid_charge_app(app_module):
    instance = app_module.GridChargeApp()
    yield instance
    instance.shutdown()


class TestConfigSearch:
    def test_config_path_takes_precedence(self, grid_charge_app, config_file):
        assert grid_charge_app._find_config_file() == str(config_file)
        assert grid_charge_app.settings.evcc_host == "evcc.test:7070"

    def test_falls_back_to_search_paths(
        self, grid_charge_app, app_module, tmp_path, monkeypatch
    ):
        fallback = tmp_path / "fallback.yaml"
        write_config(fallback, make_config(host="evcc.fallback:7070"))
        monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.yaml"))
        monkeypatch.setattr(app_module, "CONFIG_SEARCH_PATHS", [str(fallback)])

        assert grid_charge_app._find_config_file() == str(fallback)
        assert grid_charge_app._load_settings().evcc_host == "evcc.fallback:7070"

    def test_no_config_file_raises(
        self, grid_charge_app, app_module, tmp_path, monkeypatch
    ):
        monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.yaml"))
        monkeypatch.setattr(
            app_module, "CONFIG_SEARCH_PATHS", [str(tmp_path / "also-missing.yaml")]
        )

        with pytest.raises(SystemConfigurationError):
            grid_charge_app._find_config_file()


def test_evcc_host_env_overrides_config(app_module, monkeypatch):
    monkeypatch.setenv("EVCC_HOST", "evcc.override:7070")

    instance = app_module.GridChargeApp()

    assert instance.settings.evcc_host == "evcc.override:7070"
    assert instance.charge_controller.device_address == "evcc.override:7070"


class TestReload:
    @pytest.mark.parametrize(
        "broken",
        [
            "evcc: [unclosed",
            yaml.safe_dump(
                make_config(bands={"afternoon": {"start": 16, "end": 12}})
            ),
            yaml.safe_dump({"global": {"interval": 60}}),
        ],
    )
    def test_failed_reload_keeps_last_good_settings(
        self, grid_charge_app, config_file, broken
    ):
        previous = grid_charge_app.settings
        config_file.write_text(broken)

        grid_charge_app._reload_settings()

        assert grid_charge_app.settings is previous
        assert grid_charge_app.charge_controller.settings is previous
        failures = grid_charge_app.charge_controller.failure_tracker.get_active_failures()
        assert [f.category for f in failures] == [CATEGORY_CONFIGURATION]
        assert failures[0].device_address == "evcc.test:7070"

    def test_reload_applies_new_bands(self, grid_charge_app, config_file):
        write_config(
            config_file,
            make_config(bands={"night": {"start": 1, "end": 5, "battery_limit": 70}}),
        )

        grid_charge_app._reload_settings()

        assert [b.name for b in grid_charge_app.settings.bands] == ["night"]
        assert grid_charge_app.charge_controller.settings.bands[0].soc_limit == 70

    def test_host_change_swaps_controller(self, grid_charge_app, config_file):
        old_controller = grid_charge_app.charge_controller.controller
        write_config(config_file, make_config(host="evcc.new:7070"))

        grid_charge_app._reload_settings()

        assert grid_charge_app.charge_controller.controller is not old_controller
        assert grid_charge_app.charge_controller.device_address == "evcc.new:7070"
        assert grid_charge_app.charge_controller.controller.test_mode


class TestScheduling:
    """No bands are configured, so every cycle is off shift and stays local."""

    def test_start_schedules_interval_job(self, grid_charge_app, app_module):
        grid_charge_app.start()

        job = grid_charge_app.scheduler.get_job(app_module.CYCLE_JOB_ID)
        assert job is not None
        assert job.trigger.interval.total_seconds() == 300
        assert grid_charge_app.charge_controller.last_cycle.off_shift

    def test_start_with_zero_interval_runs_single_cycle(
        self, grid_charge_app, config_file
    ):
        write_config(config_file, make_config(interval=0))

        grid_charge_app.start()

        assert not grid_charge_app.scheduler.running
        assert grid_charge_app.charge_controller.last_cycle is not None

    def test_reload_reschedules_on_interval_change(
        self, grid_charge_app, app_module, config_file
    ):
        grid_charge_app.start()
        write_config(config_file, make_config(interval=60))

        grid_charge_app._reload_settings()

        job = grid_charge_app.scheduler.get_job(app_module.CYCLE_JOB_ID)
        assert job.trigger.interval.total_seconds() == 60
        assert grid_charge_app.settings.interval == 60

    def test_reload_to_zero_interval_removes_job(
        self, grid_charge_app, app_module, config_file
    ):
        grid_charge_app.start()
        write_config(config_file, make_config(interval=0))

        grid_charge_app._reload_settings()

        assert grid_charge_app.scheduler.get_job(app_module.CYCLE_JOB_ID) is None
        assert grid_charge_app.settings.interval == 0
