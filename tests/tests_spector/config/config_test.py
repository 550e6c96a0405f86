import logging
import os

from dataclasses import dataclass

from spector.config import Config, ConfigSection, ValidateConfig, known_config_files


def test_config():
    with open("spector.toml", "w") as f:
        f.write(
            '[validate]\nmode = "generic"\n'
            '[log]\npretty = false\n  [log.fmt]\n  stream = "%(message)s"'
        )

    Config.load_file("spector.toml")

    @dataclass
    class MyConfig(ConfigSection):
        title = "log.fmt"
        stream: str = "%(levelname)s"

    assert MyConfig.load().stream == "%(message)s"

    config = ValidateConfig.load()
    assert config.mode == "generic"
    assert config.plugins


def test_config_defaults():
    # $SPECTOR_CONFIG is not a regular file in the testsuite
    assert Config.load_section("validate") == {}
    config = ValidateConfig.load()
    assert config.mode == "schema"
    assert config.plugins
    assert Config.load_section("validate.unknown") == {}


def test_config_invalid_value(caplog):
    with open("spector.toml", "w") as f:
        f.write("[validate]\nmode = 1\nplugins = false\n")

    Config.load_file("spector.toml")
    with caplog.at_level(logging.ERROR):
        config = ValidateConfig.load()
    assert config.mode == "schema"
    assert not config.plugins
    assert "validate.mode" in caplog.text


def test_config_invalid_file(caplog):
    with open("spector.toml", "w") as f:
        f.write("[validate\n")
    with caplog.at_level(logging.ERROR):
        Config.load_file("spector.toml")
    assert "spector.toml" in caplog.text


def test_known_config_files(monkeypatch):
    monkeypatch.setenv("SPECTOR_CONFIG", "my.toml")
    assert known_config_files() == ["my.toml"]

    monkeypatch.delenv("SPECTOR_CONFIG")
    monkeypatch.setenv("XDG_CONFIG_HOME", os.getcwd())
    files = known_config_files()
    assert files[0] == os.path.join(os.getcwd(), "spector.toml")
    assert len(files) == 2

    with open("spector.toml", "w") as f:
        f.write('[validate]\nmode = "generic"\n')
    Config.load()
    assert ValidateConfig.load().mode == "generic"
