"""Tests for settings loading from environment and YAML."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest
import yaml
from pydantic import ValidationError

from betsettler.config import Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.processor.interval_ms == 5000
    assert settings.processor.default_refund_pct == 95
    assert settings.interval_seconds == 5
    assert settings.mongo.logs_collection == "bet_logs"


def test_nested_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("LEDGER__URL", "https://ledger.test/fast-market")
    monkeypatch.setenv("PROCESSOR__INTERVAL_MS", "2500")
    monkeypatch.setenv("REDIS__PORT", "6380")

    settings = Settings(_env_file=None)

    assert settings.ledger.url == "https://ledger.test/fast-market"
    assert settings.interval_seconds == 2.5
    assert settings.redis.port == 6380


def test_invalid_refund_default_rejected(monkeypatch) -> None:
    monkeypatch.setenv("PROCESSOR__DEFAULT_REFUND_PCT", "120")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_yaml_overlay_merges_sections(tmp_path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"processor": {"interval_ms": 10000}, "mongo": {"database": "fastbets"}})
    )

    settings = Settings(_env_file=None, config_file=config_path)
    settings.load_yaml_config()

    assert settings.processor.interval_ms == 10000
    assert settings.processor.default_refund_pct == 95
    assert settings.mongo.database == "fastbets"
    assert settings.mongo.uri == "mongodb://localhost:27017"


def test_missing_yaml_keeps_defaults(tmp_path) -> None:
    settings = Settings(_env_file=None, config_file=tmp_path / "absent.yaml")
    settings.load_yaml_config()

    assert settings.processor.interval_ms == 5000
