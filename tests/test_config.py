"""Tests verifying configuration values for the command line tool."""
import configparser
import sys
from pathlib import Path

# Ensure the application package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from repoauth_app import config

CFG_PATH = Path(__file__).with_name("app_config_test.ini")


def load_cfg():
    cfg = configparser.ConfigParser()
    cfg.read(CFG_PATH)
    return cfg


def test_settings_match_config_file(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "DEFAULT_CONFIG_FILE", tmp_path / "absent.ini")
    cfg = load_cfg()
    settings = config.load_settings(CFG_PATH)
    assert settings.ssh_dir_path == Path(cfg.get("ssh", "directory"))
    assert settings.config_file == Path(cfg.get("ssh", "directory")) / cfg.get("ssh", "config")
    assert settings.required_commands == ("ssh", "git")
    assert settings.connect_timeout == cfg.getint("ssh", "connect_timeout")
    assert settings.log_level == cfg.get("logging", "level")
    assert settings.syslog is False
    assert settings.sources == [str(CFG_PATH)]
    assert settings.uses_default_config is False


def test_defaults_without_config_files(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "DEFAULT_CONFIG_FILE", tmp_path / "absent.ini")
    settings = config.load_settings()
    assert settings.ssh_dir_path == Path("~/.ssh").expanduser()
    assert settings.config_file == Path("~/.ssh/config").expanduser()
    assert settings.required_commands == config.DEFAULT_REQUIRED_COMMANDS
    assert settings.syslog is True
    assert settings.sources == []
    assert settings.uses_default_config is True


def test_explicit_file_overrides_default(monkeypatch, tmp_path):
    default = tmp_path / "default.ini"
    default.write_text("[ssh]\nconnect_timeout = 30\n[logging]\nlevel = ERROR\n")
    monkeypatch.setattr(config, "DEFAULT_CONFIG_FILE", default)
    settings = config.load_settings(CFG_PATH)
    assert settings.connect_timeout == load_cfg().getint("ssh", "connect_timeout")
    assert settings.log_level == load_cfg().get("logging", "level")
