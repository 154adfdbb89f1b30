from __future__ import annotations

import importlib
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from backend.utils.config import get_settings


@pytest.fixture()
def app_module(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "module_level.db"))
    get_settings.cache_clear()
    module = importlib.import_module("app")
    yield module
    get_settings.cache_clear()


def test_startup_creates_schema_and_seeds_catalogue(tmp_path, app_module):
    settings = replace(get_settings(), database_path=tmp_path / "startup.db", wordpress_api_key="k")

    with TestClient(app_module.create_app(settings)) as client:
        response = client.get("/api/wordpress/rooms", headers={"X-Heiwa-API-Key": "k"})

    assert response.status_code == 200
    assert len(response.json()["data"]["rooms"]) == 3


def test_startup_without_seed_serves_empty_catalogue(tmp_path, app_module):
    settings = replace(
        get_settings(),
        database_path=tmp_path / "unseeded.db",
        wordpress_api_key="k",
        seed_demo_data=False,
    )

    with TestClient(app_module.create_app(settings)) as client:
        response = client.get("/api/wordpress/rooms", headers={"X-Heiwa-API-Key": "k"})

    body = response.json()
    assert response.status_code == 200
    assert body["data"]["rooms"] == []
    assert body["meta"]["message"] == "No rooms available"
