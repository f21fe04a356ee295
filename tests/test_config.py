import json
import logging
from pathlib import Path

import pytest

from filepi.core import constants
from filepi.core.config import DEFAULT_SETTINGS, load_settings
from filepi.core.context import RootContext
from filepi.core.exceptions import ConfigurationError
from filepi.core.logging_config import setup_logging


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings(environ={})
        assert settings.root_dir == Path(DEFAULT_SETTINGS["root_dir"])
        assert settings.port == constants.DEFAULT_PORT
        assert settings.host == constants.DEFAULT_HOST
        assert settings.log_level == "info"
        assert settings.logging_level == logging.INFO
        assert settings.cors_origins == ("*",)

    def test_environment_overrides(self, tmp_path):
        settings = load_settings(
            environ={
                "FILE_PI_ROOT_DIR": str(tmp_path),
                "FILE_PI_PORT": "9090",
                "FILE_PI_LOGLEVEL": "DEBUG",
                "FILE_PI_FFMPEG": "/opt/ffmpeg/bin/ffmpeg",
                "FILE_PI_CORS_ORIGINS": "http://a.local, http://b.local",
            }
        )
        assert settings.root_dir == tmp_path
        assert settings.port == 9090
        assert settings.log_level == "debug"
        assert settings.ffmpeg_path == "/opt/ffmpeg/bin/ffmpeg"
        assert settings.cors_origins == ("http://a.local", "http://b.local")

    def test_empty_environment_values_are_ignored(self):
        assert load_settings(environ={"FILE_PI_PORT": ""}).port == constants.DEFAULT_PORT

    @pytest.mark.parametrize("port", ["http", "0", "70000"])
    def test_invalid_port(self, port):
        with pytest.raises(ConfigurationError):
            load_settings(environ={"FILE_PI_PORT": port})

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError, match="Invalid log level"):
            load_settings(environ={"FILE_PI_LOGLEVEL": "verbose"})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            load_settings(environ={"FILE_PI_WALK_TIMEOUT": "0"})


class TestConfigFile:
    def test_file_values_sit_below_the_environment(self, tmp_path):
        config_file = tmp_path / "filepi.json"
        config_file.write_text(json.dumps({"port": 7000, "host": "127.0.0.1", "colour": "blue"}))

        settings = load_settings(config_file, environ={"FILE_PI_PORT": "7001"})
        assert settings.port == 7001
        assert settings.host == "127.0.0.1"

    def test_file_from_environment(self, tmp_path):
        config_file = tmp_path / "filepi.json"
        config_file.write_text(json.dumps({"thumbnail_width": 480}))
        settings = load_settings(environ={"FILE_PI_CONFIG": str(config_file)})
        assert settings.thumbnail_width == 480

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "missing.json", environ={})

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_malformed_file(self, tmp_path, content):
        config_file = tmp_path / "bad.json"
        config_file.write_text(content)
        with pytest.raises(ConfigurationError):
            load_settings(config_file, environ={})


class TestRootContext:
    def test_root_is_canonical(self, tmp_path):
        (tmp_path / "served").mkdir()
        context = RootContext.from_root(tmp_path / "served" / ".." / "served")
        assert context.root == (tmp_path / "served").resolve()
        assert context.cache_dir == context.root / ".cache"

    def test_missing_root(self, tmp_path):
        with pytest.raises(ConfigurationError):
            RootContext.from_root(tmp_path / "nope")

    def test_root_must_be_a_directory(self, tmp_path):
        (tmp_path / "file.txt").write_text("x")
        with pytest.raises(ConfigurationError):
            RootContext.from_root(tmp_path / "file.txt")

    def test_from_settings(self, tmp_path):
        settings = load_settings(environ={"FILE_PI_ROOT_DIR": str(tmp_path)})
        assert RootContext.from_settings(settings).root == tmp_path.resolve()


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def test_setup_logging_writes_a_rotating_log_file(tmp_path, restore_root_logger):
    log_file = setup_logging(logging.DEBUG, tmp_path / "logs")
    assert log_file == tmp_path / "logs" / constants.LOG_FILENAME
    logging.getLogger("filepi.test").info("hello from the test")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello from the test" in log_file.read_text(encoding="utf-8")
