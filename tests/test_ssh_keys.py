"""Tests for private key sanitising, validation and storage."""
import configparser
import io
import os
from pathlib import Path
import stat
import sys

import pytest

# Ensure application importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from repoauth_app import ssh_keys
from repoauth_app.errors import EXIT_INVALID, FilesystemError, InvalidInputError
from repoauth_app.ssh_keys import (
    KeyMaterial,
    describe_key,
    key_path_for_host,
    read_key,
    sanitize_key,
    validate_host,
    validate_key,
    write_key_file,
)


def _load_cfg() -> configparser.ConfigParser:
    cfg = configparser.ConfigParser()
    cfg.read(Path(__file__).with_name("ssh_keys_test_config.ini"))
    return cfg


def _key_lines(cfg):
    key = cfg["key"]
    return [key["begin"], key["body1"], key["body2"], key["end"]]


def test_sanitize_strips_carriage_returns_and_blank_lines():
    cfg = _load_cfg()
    begin, body1, body2, end = _key_lines(cfg)
    raw = f"\r\n\r\n{begin}\r\n\r\n{body1}\r\n   \r\n{body2}\r\n\t\n{end}\r\n\r\n"
    cleaned = sanitize_key(raw)
    assert "\r" not in cleaned
    assert cleaned == "\n".join([begin, body1, body2, end]) + "\n"


def test_sanitize_empty_input_is_empty():
    assert sanitize_key("") == ""
    assert sanitize_key("\r\n \n\n") == ""


def test_read_key_accepts_pasted_key():
    cfg = _load_cfg()
    raw = "\r\n".join(_key_lines(cfg))
    material = read_key(raw)
    assert material.as_text() == "\n".join(_key_lines(cfg)) + "\n"


@pytest.mark.parametrize(
    "drop, message",
    [("begin", "missing BEGIN"), ("end", "missing END")],
)
def test_validate_rejects_missing_marker(drop, message):
    cfg = _load_cfg()
    lines = [line for line in _key_lines(cfg) if line != cfg["key"][drop]]
    with pytest.raises(InvalidInputError, match=message) as excinfo:
        validate_key(sanitize_key("\n".join(lines)))
    assert excinfo.value.exit_code == EXIT_INVALID


def test_validate_rejects_empty_and_garbage():
    with pytest.raises(InvalidInputError, match="input empty"):
        validate_key("")
    with pytest.raises(InvalidInputError):
        validate_key("ssh-ed25519 AAAAC3NzaC1lZDI1NTE5 user@example\n")


def test_validate_rejects_two_keys_and_reversed_markers():
    cfg = _load_cfg()
    one = "\n".join(_key_lines(cfg))
    with pytest.raises(InvalidInputError, match="more than one"):
        validate_key(sanitize_key(one + "\n" + one))
    begin, body1, body2, end = _key_lines(cfg)
    with pytest.raises(InvalidInputError, match="precedes"):
        validate_key(sanitize_key("\n".join([end, body1, body2, begin])))


def test_validate_host():
    cfg = _load_cfg()
    assert validate_host(f"  {cfg['host']['name']} ") == cfg["host"]["name"]
    with pytest.raises(InvalidInputError, match="empty"):
        validate_host("")
    with pytest.raises(InvalidInputError):
        validate_host(None)
    for name in cfg["invalid_hosts"]["names"].split(","):
        with pytest.raises(InvalidInputError):
            validate_host(name)


def test_key_path_for_host(tmp_path):
    cfg = _load_cfg()
    path = key_path_for_host(tmp_path, cfg["host"]["name"])
    assert path == tmp_path / cfg["host"]["key_filename"]


def test_key_material_is_redacted_and_cleared():
    cfg = _load_cfg()
    material = KeyMaterial("\n".join(_key_lines(cfg)))
    assert cfg["key"]["body1"] not in repr(material)
    assert material
    material.clear()
    assert len(material) == 0
    assert not material


def test_write_key_file_mode_ignores_umask(tmp_path):
    cfg = _load_cfg()
    text = "\n".join(_key_lines(cfg)) + "\n"
    material = KeyMaterial(text)
    path = tmp_path / cfg["host"]["key_filename"]
    old = os.umask(0)
    try:
        write_key_file(path, material)
    finally:
        os.umask(old)
    assert path.read_text() == text
    assert stat.S_IMODE(path.stat().st_mode) == int(cfg["modes"]["key"], 8)
    assert len(material) == 0


def test_write_key_file_tightens_existing_file(tmp_path):
    cfg = _load_cfg()
    path = tmp_path / cfg["host"]["key_filename"]
    path.write_text("old")
    path.chmod(0o644)
    write_key_file(path, KeyMaterial("\n".join(_key_lines(cfg))))
    assert stat.S_IMODE(path.stat().st_mode) == int(cfg["modes"]["key"], 8)
    assert "old" not in path.read_text()


def test_write_key_file_reports_filesystem_failure(tmp_path):
    cfg = _load_cfg()
    material = KeyMaterial("\n".join(_key_lines(cfg)))
    target = tmp_path / "missing-dir" / cfg["host"]["key_filename"]
    with pytest.raises(FilesystemError) as excinfo:
        write_key_file(target, material)
    assert excinfo.value.exit_code == 2
    assert len(material) == 0


def test_describe_key_reports_paramiko_type():
    cfg = _load_cfg()
    key = ssh_keys.paramiko.RSAKey.generate(cfg["paramiko"].getint("bits"))
    buffer = io.StringIO()
    key.write_private_key(buffer)
    material = read_key(buffer.getvalue())
    assert describe_key(material) == cfg["paramiko"]["expected_name"]


def test_describe_key_tolerates_unparseable_key(monkeypatch):
    cfg = _load_cfg()
    monkeypatch.delattr(ssh_keys.paramiko, "ECDSAKey", raising=False)
    material = read_key("\n".join(_key_lines(cfg)))
    assert describe_key(material) is None


def test_existing_key_is_private_before_new_bytes_land(tmp_path, monkeypatch):
    cfg = _load_cfg()
    path = tmp_path / cfg["host"]["key_filename"]
    path.write_text("old")
    path.chmod(0o644)
    modes = []
    real_fdopen = os.fdopen

    def recording_fdopen(fd, *args, **kwargs):
        modes.append(stat.S_IMODE(os.fstat(fd).st_mode))
        return real_fdopen(fd, *args, **kwargs)

    monkeypatch.setattr(ssh_keys.os, "fdopen", recording_fdopen)
    write_key_file(path, KeyMaterial("\n".join(_key_lines(cfg))))

    assert modes == [int(cfg["modes"]["key"], 8)]
