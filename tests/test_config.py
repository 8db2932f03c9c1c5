from __future__ import annotations

import pytest

from esmonitor.core.config import AppSettings, KibanaSettings


def test_single_worker_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("API_WORKERS", raising=False)
    assert AppSettings(_env_file=None).api_workers == 1


def test_workers_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_WORKERS", "3")
    assert AppSettings(_env_file=None).api_workers == 3


def test_kibana_base_url_trailing_slash_stripped() -> None:
    assert KibanaSettings(base_url="http://kibana.test:5601/", _env_file=None).base_url == "http://kibana.test:5601"
