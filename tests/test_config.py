# SPDX-License-Identifier: MIT
"""Tests for settings access and storage configuration."""

import json
from pathlib import Path

import pytest

from icepeek.config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_S3_REGION,
    StorageConfig,
    default_page_size,
    effective_limit,
    get_bool_setting,
    get_int_setting,
    get_setting,
    get_settings_path,
)


@pytest.fixture
def settings_file(tmp_path: Path, monkeypatch):
    """Point ICEPEEK_SETTINGS at a writable file and return a writer."""
    path = tmp_path / "settings.json"
    monkeypatch.setenv("ICEPEEK_SETTINGS", str(path))

    def write(data):
        path.write_text(json.dumps(data))
        return path

    return write


@pytest.fixture
def clean_storage_env(monkeypatch):
    for name in ("S3_ENDPOINT", "AWS_REGION", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_settings_path_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ICEPEEK_SETTINGS", str(tmp_path / "custom.json"))
        assert get_settings_path() == tmp_path / "custom.json"

    def test_settings_path_default_under_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ICEPEEK_SETTINGS", raising=False)
        monkeypatch.setenv("ICEPEEK_CONFIG_DIR", str(tmp_path / "cfg"))
        assert get_settings_path() == tmp_path / "cfg" / "settings.json"

    def test_missing_file_returns_default(self, settings_file):
        assert get_setting("pageSize", 7) == 7

    def test_dot_notation(self, settings_file):
        settings_file({"s3": {"region": "eu-west-1"}})
        assert get_setting("s3.region") == "eu-west-1"
        assert get_setting("s3.endpoint", "none") == "none"

    def test_invalid_json_returns_default(self, settings_file, tmp_path):
        settings_file({}).write_text("{not json")
        assert get_setting("pageSize", 3) == 3

    def test_bool_setting_strings(self, settings_file):
        settings_file({"a": "yes", "b": "0", "c": True})
        assert get_bool_setting("a") is True
        assert get_bool_setting("b") is False
        assert get_bool_setting("c") is True

    def test_int_setting_bad_value(self, settings_file):
        settings_file({"pageSize": "lots"})
        assert get_int_setting("pageSize", 11) == 11


class TestLimits:
    def test_default_page_size(self, settings_file):
        assert default_page_size() == DEFAULT_PAGE_SIZE == 500

    def test_page_size_setting(self, settings_file):
        settings_file({"pageSize": 250})
        assert default_page_size() == 250

    def test_non_positive_page_size_ignored(self, settings_file):
        settings_file({"pageSize": 0})
        assert default_page_size() == DEFAULT_PAGE_SIZE

    def test_effective_limit_explicit(self, settings_file):
        assert effective_limit(1000, False) == 1000

    def test_effective_limit_default(self, settings_file):
        assert effective_limit(None, False) == 500

    def test_effective_limit_unlimited(self, settings_file):
        assert effective_limit(1000, True) is None


class TestStorageConfig:
    def test_defaults(self, settings_file, clean_storage_env):
        config = StorageConfig.resolve()
        assert config.region == DEFAULT_S3_REGION
        assert config.endpoint is None
        assert config.storage_props() == {"s3.region": "us-east-1"}

    def test_env_resolution(self, settings_file, clean_storage_env, monkeypatch):
        monkeypatch.setenv("S3_ENDPOINT", "http://localhost:9000")
        monkeypatch.setenv("AWS_REGION", "eu-central-1")
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "minio")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "minio123")
        config = StorageConfig.resolve()
        assert config.storage_props() == {
            "s3.region": "eu-central-1",
            "s3.endpoint": "http://localhost:9000",
            "s3.path-style-access": "true",
            "s3.access-key-id": "minio",
            "s3.secret-access-key": "minio123",
        }

    def test_explicit_beats_env(self, settings_file, clean_storage_env, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "eu-central-1")
        config = StorageConfig.resolve(region="ap-south-1")
        assert config.region == "ap-south-1"

    def test_settings_fallback(self, settings_file, clean_storage_env):
        settings_file({"s3": {"region": "us-west-2", "endpoint": "http://s3.local"}})
        config = StorageConfig.resolve()
        assert config.region == "us-west-2"
        assert config.endpoint == "http://s3.local"

    def test_env_beats_settings(self, settings_file, clean_storage_env, monkeypatch):
        settings_file({"s3": {"region": "us-west-2"}})
        monkeypatch.setenv("AWS_REGION", "eu-north-1")
        assert StorageConfig.resolve().region == "eu-north-1"
