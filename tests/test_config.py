import json
import logging

import pytest

from config import DEFAULT_CONFIG, ENV_BUILD, ENV_DATA_DIR, AppConfig, detect_debug_build


# ===========================================================================
# Build mode
# ===========================================================================

class TestBuildMode:

    @pytest.mark.parametrize("value, expected", [("debug", True), ("release", False), (" Release ", False)])
    def test_environment_override(self, monkeypatch, value, expected):
        monkeypatch.setenv(ENV_BUILD, value)
        assert detect_debug_build() is expected

    def test_source_checkout_is_debug(self, monkeypatch):
        monkeypatch.delenv(ENV_BUILD, raising=False)
        monkeypatch.delattr("sys.frozen", raising=False)
        assert detect_debug_build() is True

    def test_frozen_bundle_is_release(self, monkeypatch):
        monkeypatch.delenv(ENV_BUILD, raising=False)
        monkeypatch.setattr("sys.frozen", True, raising=False)
        assert detect_debug_build() is False

    def test_explicit_argument_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_BUILD, "debug")
        assert AppConfig(data_dir=str(tmp_path), debug_build=False).debug_build is False


# ===========================================================================
# Files and values
# ===========================================================================

class TestAppConfig:

    def test_paths_live_in_data_dir(self, tmp_path):
        config = AppConfig(data_dir=str(tmp_path))
        assert config.user_data_dir == str(tmp_path)
        assert config.config_path == str(tmp_path / "config.json")
        assert config.store_path == str(tmp_path / "settings.json")
        assert config.log_path == str(tmp_path / "app.log")

    def test_data_dir_from_environment(self, tmp_path, monkeypatch):
        target = tmp_path / "from-env"
        monkeypatch.setenv(ENV_DATA_DIR, str(target))
        config = AppConfig()
        assert config.user_data_dir == str(target)
        assert target.is_dir()

    def test_defaults_without_file(self, tmp_path):
        assert AppConfig(data_dir=str(tmp_path)).data == DEFAULT_CONFIG

    def test_missing_keys_are_back_filled(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"search_max_results": 10}), encoding="utf-8")

        config = AppConfig(data_dir=str(tmp_path))

        assert config.get("search_max_results") == 10
        assert config.get("state_history_size") == 50

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "config.json").write_text("{oops", encoding="utf-8")
        assert AppConfig(data_dir=str(tmp_path)).data == DEFAULT_CONFIG

    def test_set_and_save(self, tmp_path):
        config = AppConfig(data_dir=str(tmp_path))
        config.set("auto_lock_timeout_seconds", 60)
        config.save()

        assert AppConfig(data_dir=str(tmp_path)).get("auto_lock_timeout_seconds") == 60

    def test_get_default(self, tmp_path):
        assert AppConfig(data_dir=str(tmp_path)).get("nope", "fallback") == "fallback"

    def test_search_configuration(self, tmp_path):
        config = AppConfig(data_dir=str(tmp_path))
        config.set("search_min_query_length", 3)
        config.set("search_fuzzy_matching", False)

        search = config.search_configuration()

        assert search.min_query_length == 3
        assert search.max_results == 100
        assert search.enable_fuzzy_matching is False


# ===========================================================================
# Logging
# ===========================================================================

class TestLogging:

    def test_log_file_is_written(self, tmp_path):
        config = AppConfig(data_dir=str(tmp_path))
        config.logger.info("hello from the test")
        for handler in config.logger.handlers:
            handler.flush()
        assert "hello from the test" in (tmp_path / "app.log").read_text(encoding="utf-8")

    def test_handler_attached_once_per_file(self, tmp_path):
        AppConfig(data_dir=str(tmp_path))
        AppConfig(data_dir=str(tmp_path))
        assert len(logging.getLogger("SecureDesk").handlers) == 1

    def test_log_level_from_config(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"log_level": "warning"}), encoding="utf-8")
        config = AppConfig(data_dir=str(tmp_path))
        assert config.logger.level == logging.WARNING
