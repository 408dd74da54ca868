from __future__ import annotations

import os

import pytest

from core.config import (
    AppSettings,
    _parse_env_lines,
    get_user_env_file,
    load_runtime_config,
    split_domain_list,
    write_user_env_vars,
)
from core.domain.catalog import DEFAULT_DOMAIN_IDS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("UNRAID_SYNC_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))


def settings(**values) -> AppSettings:
    return AppSettings(_env_file=None, **values)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(1, 5.0), (5, 5.0), (120, 120.0), ("30", 30.0), (0, 60.0), (-3, 60.0), ("abc", 60.0), (None, 60.0)],
)
def test_poll_interval_is_clamped(raw, expected):
    assert settings(poll_interval_seconds=raw).poll_interval_seconds == expected


def test_enabled_domains_from_environment(monkeypatch):
    monkeypatch.setenv("UNRAID_SYNC_ENABLED_DOMAINS", "info.time, array")

    assert settings().enabled_domains == ["info.time", "array"]


def test_enabled_domains_accepts_bracketed_list(monkeypatch):
    monkeypatch.setenv("UNRAID_SYNC_ENABLED_DOMAINS", '["vms", "shares"]')

    assert settings().enabled_domains == ["vms", "shares"]


def test_empty_enabled_domains_means_defaults(monkeypatch):
    monkeypatch.setenv("UNRAID_SYNC_ENABLED_DOMAINS", "")

    assert settings().enabled_domains is None


def test_missing_connection_settings_yield_no_config(log_messages):
    assert load_runtime_config(settings(api_token="t")) is None
    assert load_runtime_config(settings(base_url="http://tower")) is None
    assert any("UNRAID_SYNC_BASE_URL" in message for message in log_messages)
    assert any("UNRAID_SYNC_API_TOKEN" in message for message in log_messages)


def test_runtime_config_is_normalized():
    config = load_runtime_config(
        settings(
            base_url=" https://tower.local/ ",
            api_token="abc",
            poll_interval_seconds=2,
            allow_self_signed=True,
            enabled_domains="docker,bogus",
        )
    )

    assert config is not None
    assert config.endpoint == "https://tower.local/graphql"
    assert config.poll_interval_seconds == 5.0
    assert config.allow_self_signed is True
    assert config.enabled_domains == ("docker",)


def test_runtime_config_defaults_selection():
    config = load_runtime_config(settings(base_url="http://tower", api_token="abc"))

    assert config is not None
    assert config.enabled_domains == DEFAULT_DOMAIN_IDS


def test_write_user_env_vars_merges_existing_values():
    path = write_user_env_vars({"UNRAID_SYNC_BASE_URL": "http://a"})
    write_user_env_vars({"UNRAID_SYNC_API_TOKEN": "tok"})

    assert path == get_user_env_file()
    assert _parse_env_lines(path.read_text(encoding="utf-8")) == {
        "UNRAID_SYNC_API_TOKEN": "tok",
        "UNRAID_SYNC_BASE_URL": "http://a",
    }


def test_parse_env_lines_ignores_comments_and_quotes():
    text = '# comment\n\nKEY="value"\nOTHER = \'x\'\nnot a pair\n'
    assert _parse_env_lines(text) == {"KEY": "value", "OTHER": "x"}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("info.time, array", ["info.time", "array"]),
        ('["vms", "shares"]', ["vms", "shares"]),
        (" , ", None),
        ("", None),
        (None, None),
        (["docker", " "], ["docker"]),
    ],
)
def test_split_domain_list(raw, expected):
    assert split_domain_list(raw) == expected
