from pathlib import Path

import pytest
from pytest import MonkeyPatch

from socialauth.auth.config import interpolate_env, load_alipay_config
from socialauth.auth.signing import SignatureScheme

CONFIG_YAML = """
alipay:
  client_id: "2021000000000000"
  sign_scheme: keyed_hash
  client_secret: "${ALIPAY_SECRET}"
  hash_algorithm: md5
  redirect_uri: https://example.com/alipay/callback
"""


def test_load_alipay_config_interpolates_env(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("ALIPAY_SECRET", "s3cr3t")
    config_file = tmp_path / "alipay.yaml"
    config_file.write_text(CONFIG_YAML)

    config = load_alipay_config(config_file)

    assert config.client_id == "2021000000000000"
    assert config.client_secret == "s3cr3t"
    assert config.sign_scheme is SignatureScheme.KEYED_HASH
    assert config.sign_type == "MD5"


def test_load_alipay_config_from_env_var(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("ALIPAY_SECRET", "s3cr3t")
    config_file = tmp_path / "custom.yaml"
    config_file.write_text(CONFIG_YAML)
    monkeypatch.setenv("SOCIALAUTH_ALIPAY_CONFIG", str(config_file))

    assert load_alipay_config().client_secret == "s3cr3t"


def test_load_alipay_config_defaults_to_cwd(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("ALIPAY_SECRET", "s3cr3t")
    monkeypatch.delenv("SOCIALAUTH_ALIPAY_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / "alipay.yaml").write_text(CONFIG_YAML)

    assert load_alipay_config().client_id == "2021000000000000"


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_alipay_config(tmp_path / "nope.yaml")


def test_unset_env_reference_raises(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.delenv("ALIPAY_SECRET", raising=False)
    config_file = tmp_path / "alipay.yaml"
    config_file.write_text(CONFIG_YAML)

    with pytest.raises(ValueError, match="ALIPAY_SECRET"):
        load_alipay_config(config_file)


def test_invalid_yaml_raises_value_error(tmp_path: Path) -> None:
    config_file = tmp_path / "alipay.yaml"
    config_file.write_text("alipay: [unclosed")

    with pytest.raises(ValueError):
        load_alipay_config(config_file)


def test_missing_section_raises_value_error(tmp_path: Path) -> None:
    config_file = tmp_path / "alipay.yaml"
    config_file.write_text("github:\n  client_id: x\n")

    with pytest.raises(ValueError, match="alipay"):
        load_alipay_config(config_file)


def test_invalid_section_raises_value_error(tmp_path: Path) -> None:
    config_file = tmp_path / "alipay.yaml"
    config_file.write_text("alipay:\n  client_id: x\n  sign_scheme: keyed_hash\n")

    with pytest.raises(ValueError, match="Invalid Alipay config"):
        load_alipay_config(config_file)


def test_interpolate_env_recurses(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("HOST", "example.com")
    value = {"urls": ["https://${HOST}/a", 3], "plain": "x"}
    assert interpolate_env(value) == {"urls": ["https://example.com/a", 3], "plain": "x"}
