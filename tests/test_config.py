import os

import pytest

from pollbot.config import Config, load_config

ENV_KEYS = ("MATTERMOST_URL", "BOT_TOKEN", "TARANTOOL_ADDR")


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults_without_env_or_file(clean_env, tmp_path):
    cfg = load_config(tmp_path / "missing.env")
    assert cfg == Config(
        mattermost_url="http://localhost:8065",
        bot_token="token",
        tarantool_addr="localhost:3301",
    )


def test_environment_overrides_defaults(clean_env, tmp_path):
    clean_env.setenv("MATTERMOST_URL", "https://chat.example.com")
    clean_env.setenv("TARANTOOL_ADDR", "db.example.com:3302")
    cfg = load_config(tmp_path / "missing.env")
    assert cfg.mattermost_url == "https://chat.example.com"
    assert cfg.tarantool_addr == "db.example.com:3302"
    assert cfg.bot_token == "token"


def test_values_read_from_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("MATTERMOST_URL=https://file.example.com\nTARANTOOL_ADDR=file.example.com:3301\n")
    cfg = load_config(env_file)
    assert cfg.mattermost_url == "https://file.example.com"
    assert cfg.tarantool_addr == "file.example.com:3301"


def test_environment_beats_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("MATTERMOST_URL=https://file.example.com\n")
    clean_env.setenv("MATTERMOST_URL", "https://env.example.com")
    assert load_config(env_file).mattermost_url == "https://env.example.com"


def test_empty_environment_value_uses_default(clean_env, tmp_path):
    clean_env.setenv("TARANTOOL_ADDR", "")
    assert load_config(tmp_path / "missing.env").tarantool_addr == "localhost:3301"


def test_loading_file_does_not_touch_environment(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("MATTERMOST_URL=https://file.example.com\n")
    cfg = load_config(env_file)
    assert cfg.mattermost_url == "https://file.example.com"
    assert os.environ.get("MATTERMOST_URL") is None


def test_token_hidden_from_repr(clean_env, tmp_path):
    cfg = load_config(tmp_path / "missing.env")
    assert "bot_token" not in repr(cfg)