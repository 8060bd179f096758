"""Tests for the local config store."""

import json
import os
import stat

import pytest

from agenthq_cli.core.config import (
    DEFAULT_HUB_URL,
    Config,
    clear_config,
    config_dir,
    config_path,
    load_config,
    save_config,
)
from agenthq_cli.core.errors import ConfigError

posix_only = pytest.mark.skipif(os.name != "posix", reason="permission bits are POSIX-only")


def test_config_path_under_home(isolated_home):
    assert config_path() == isolated_home / ".config" / "agenthq" / "config.json"


def test_load_without_file_returns_defaults(isolated_home):
    config = load_config()
    assert config == Config()
    assert config.hub_url == DEFAULT_HUB_URL
    assert config.api_key == config.jwt_token == config.org_id == config.agent_id == ""
    assert not config_path().exists()


def test_save_then_load_round_trips(isolated_home):
    config = Config(
        hub_url="https://hub.example.com",
        api_key="ahq_0123456789abcdef",
        jwt_token="jwt",
        org_id="org-1",
        agent_id="agent-1",
    )
    save_config(config)
    assert load_config() == config


def test_saved_file_uses_snake_case_keys(isolated_home):
    save_config(Config(hub_url="https://hub.example.com", org_id="org-1"))
    data = json.loads(config_path().read_text())
    assert data == {
        "hub_url": "https://hub.example.com",
        "api_key": "",
        "jwt_token": "",
        "org_id": "org-1",
        "agent_id": "",
    }


def test_empty_hub_url_normalizes_to_default(isolated_home):
    config_dir().mkdir(parents=True)
    config_path().write_text(json.dumps({"hub_url": "", "api_key": "k"}))
    config = load_config()
    assert config.hub_url == DEFAULT_HUB_URL
    assert config.api_key == "k"


def test_missing_and_unknown_keys_are_tolerated(isolated_home):
    config_dir().mkdir(parents=True)
    config_path().write_text(json.dumps({"org_id": "org-1", "theme": "dark", "agent_id": 7}))
    config = load_config()
    assert config == Config(org_id="org-1")


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '"text"'])
def test_malformed_file_raises_config_error(isolated_home, content):
    config_dir().mkdir(parents=True)
    config_path().write_text(content)
    with pytest.raises(ConfigError):
        load_config()


@posix_only
def test_save_restricts_permissions(isolated_home):
    save_config(Config(api_key="secret"))
    assert stat.S_IMODE(os.stat(config_path()).st_mode) == 0o600
    assert stat.S_IMODE(os.stat(config_dir()).st_mode) == 0o700


@posix_only
def test_new_file_is_created_owner_only(isolated_home, monkeypatch):
    # Without the follow-up chmod the creation mode alone must hide the key
    monkeypatch.setattr(os, "chmod", lambda *args, **kwargs: None)
    old_umask = os.umask(0o022)
    try:
        save_config(Config(api_key="secret"))
    finally:
        os.umask(old_umask)
    assert stat.S_IMODE(os.stat(config_path()).st_mode) == 0o600
    assert load_config().api_key == "secret"


@posix_only
def test_save_tightens_existing_file(isolated_home):
    config_dir().mkdir(parents=True)
    config_path().write_text("{}")
    os.chmod(config_path(), 0o644)
    save_config(Config())
    assert stat.S_IMODE(os.stat(config_path()).st_mode) == 0o600


def test_save_failure_raises_config_error(isolated_home):
    # A regular file where the config directory should be
    (isolated_home / ".config").write_text("")
    with pytest.raises(ConfigError):
        save_config(Config())


def test_clear_leaves_only_default_hub_url(isolated_home):
    save_config(Config(hub_url="https://hub.example.com", api_key="k", org_id="o"))
    cleared = clear_config()
    assert cleared == Config()
    assert load_config() == Config(hub_url=DEFAULT_HUB_URL)


class TestAuthToken:
    def test_api_key_wins(self):
        assert Config(api_key="key", jwt_token="jwt").get_auth_token() == "key"

    def test_falls_back_to_session_token(self):
        assert Config(jwt_token="jwt").get_auth_token() == "jwt"

    def test_empty_when_neither_set(self):
        assert Config().get_auth_token() == ""

    def test_is_agent_follows_api_key(self):
        assert Config(api_key="key").is_agent
        assert not Config(jwt_token="jwt").is_agent
