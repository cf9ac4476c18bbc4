"""
Tests for flag / environment configuration.
"""

import logging

import pytest
from pydantic import ValidationError

from core.config import (
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_SCRAPE_TIMEOUT,
    DEFAULT_TARGET_URL,
    ExporterSettings,
    load_settings,
    parse_duration,
    split_listen_address,
)
import main

ENV_KEYS = (
    "GWC_TARGET_URL",
    "GWC_WEB_LISTEN_ADDRESS",
    "GWC_WEB_TELEMETRY_PATH",
    "GWC_SCRAPE_TIMEOUT",
    "GWC_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("5s", 5.0),
        ("500ms", 0.5),
        ("1m30s", 90.0),
        ("2h", 7200.0),
        ("1.5", 1.5),
        (" 10s ", 10.0),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["", "abc", "5x", "5s junk", "s"])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_defaults():
    settings = load_settings([], dotenv=False)

    assert settings.target_url == DEFAULT_TARGET_URL
    assert settings.listen_address == DEFAULT_LISTEN_ADDRESS
    assert settings.telemetry_path == "/metrics"
    assert settings.scrape_timeout == DEFAULT_SCRAPE_TIMEOUT
    assert settings.log_level == "INFO"
    assert settings.once is False


def test_environment_supplies_defaults(monkeypatch):
    monkeypatch.setenv("GWC_TARGET_URL", "http://gwc.example:8080/geowebcache")
    monkeypatch.setenv("GWC_WEB_LISTEN_ADDRESS", "127.0.0.1:9200")
    monkeypatch.setenv("GWC_SCRAPE_TIMEOUT", "750ms")
    monkeypatch.setenv("GWC_LOG_LEVEL", "debug")

    settings = load_settings([], dotenv=False)

    assert settings.target_url == "http://gwc.example:8080/geowebcache"
    assert settings.host_port() == ("127.0.0.1", 9200)
    assert settings.scrape_timeout == pytest.approx(0.75)
    assert settings.log_level == "DEBUG"


def test_flags_override_environment(monkeypatch):
    monkeypatch.setenv("GWC_TARGET_URL", "http://from-env/geowebcache")
    monkeypatch.setenv("GWC_SCRAPE_TIMEOUT", "9s")

    settings = load_settings(
        ["--target.url", "http://from-flag/geowebcache", "--scrape.timeout", "2s", "--once"],
        dotenv=False,
    )

    assert settings.target_url == "http://from-flag/geowebcache"
    assert settings.scrape_timeout == 2.0
    assert settings.once is True


def test_invalid_env_duration_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("GWC_SCRAPE_TIMEOUT", "soon")

    with caplog.at_level(logging.WARNING):
        settings = load_settings([], dotenv=False)

    assert settings.scrape_timeout == DEFAULT_SCRAPE_TIMEOUT
    assert "GWC_SCRAPE_TIMEOUT" in caplog.text


def test_empty_environment_value_uses_default(monkeypatch):
    monkeypatch.setenv("GWC_TARGET_URL", "   ")
    assert load_settings([], dotenv=False).target_url == DEFAULT_TARGET_URL


def test_invalid_flag_duration_exits():
    with pytest.raises(SystemExit):
        load_settings(["--scrape.timeout", "soon"], dotenv=False)


@pytest.mark.parametrize(
    "overrides",
    [
        {"target_url": "   "},
        {"scrape_timeout": 0},
        {"listen_address": "9109"},
        {"listen_address": "localhost:http"},
        {"telemetry_path": "metrics"},
        {"log_level": "chatty"},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValidationError):
        ExporterSettings(**overrides)


@pytest.mark.parametrize(
    "address, expected",
    [
        (":9109", (None, 9109)),
        ("0.0.0.0:9109", ("0.0.0.0", 9109)),
        ("[::1]:9109", ("::1", 9109)),
    ],
)
def test_split_listen_address(address, expected):
    assert split_listen_address(address) == expected


def test_main_rejects_invalid_configuration():
    assert main.main(["--target.url", "", "--once"]) == 2


def test_relative_target_is_accepted():
    settings = load_settings(["--target.url", "geowebcache"], dotenv=False)
    assert settings.target_url == "geowebcache"
