from pathlib import Path

import pytest

from startmarks.config import DEFAULT_ALLOWED_ICON_TYPES, Settings, load_settings, load_site_config


def test_defaults_match_build_contract(monkeypatch):
    for k in ("STARTMARKS_FETCH_JOBS", "STARTMARKS_FETCH_TIMEOUT_S", "STARTMARKS_MAX_ICON_BYTES", "STARTMARKS_ICON_TYPES"):
        monkeypatch.delenv(k, raising=False)
    s = Settings.from_env()
    assert s.fetch_jobs == 20
    assert s.fetch_timeout_s == 8.0
    assert s.max_icon_bytes == 1024 * 1024
    assert s.allowed_icon_content_types == DEFAULT_ALLOWED_ICON_TYPES
    assert s.placeholder_icon == "assets/placeholder_icon.svg"
    assert "Mozilla/5.0" in s.fetch_user_agent


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("STARTMARKS_FETCH_JOBS", "4")
    monkeypatch.setenv("STARTMARKS_ICON_TYPES", "image/png, image/gif")
    monkeypatch.setenv("STARTMARKS_FETCH", "0")
    monkeypatch.setenv("STARTMARKS_MAX_ICON_BYTES", "not-a-number")
    s = Settings.from_env()
    assert s.fetch_jobs == 4
    assert s.allowed_icon_content_types == ["image/png", "image/gif"]
    assert s.fetch_enabled is False
    assert s.max_icon_bytes == 1024 * 1024


def test_yaml_file_overrides_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("STARTMARKS_FETCH_JOBS", "4")
    p = tmp_path / "startmarks.yaml"
    p.write_text("fetch_jobs: 7\nicon_content_hash: true\nunknown_key: 1\n", encoding="utf-8")
    s = load_settings(str(p))
    assert s.fetch_jobs == 7
    assert s.icon_content_hash is True
    assert not hasattr(s, "unknown_key")


def test_apply_build_settings():
    s = Settings()
    s.apply_build_settings(
        {
            "concurrentRequests": 5,
            "maxIconSizeBytes": 2048,
            "allowedIconContentTypes": ["image/png"],
            "requestTimeoutMs": 3000,
        }
    )
    assert s.fetch_jobs == 5
    assert s.max_icon_bytes == 2048
    assert s.allowed_icon_content_types == ["image/png"]
    assert s.fetch_timeout_s == 3.0


def test_apply_empty_build_settings_keeps_defaults():
    s = Settings()
    s.apply_build_settings(None)
    s.apply_build_settings({"concurrentRequests": 0})
    assert s.fetch_jobs == 20


def test_load_site_config_rejects_malformed_json(tmp_path: Path):
    p = tmp_path / "config.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load_site_config(p)


def test_load_site_config_rejects_non_object(tmp_path: Path):
    p = tmp_path / "config.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_site_config(p)


@pytest.mark.parametrize(
    "block",
    [
        ["concurrentRequests", 3],
        {"concurrentRequests": "many"},
        {"concurrentRequests": -1},
        {"maxIconSizeBytes": [1024]},
        {"requestTimeoutMs": True},
        {"allowedIconContentTypes": "image/png"},
    ],
)
def test_apply_build_settings_rejects_bad_values(block):
    with pytest.raises(ValueError):
        Settings().apply_build_settings(block)


def test_apply_build_settings_accepts_numeric_strings():
    s = Settings()
    s.apply_build_settings({"concurrentRequests": "4", "requestTimeoutMs": "2500"})
    assert s.fetch_jobs == 4
    assert s.fetch_timeout_s == 2.5
