"""Shared fixtures: a throwaway SQLite database and a fake remote API."""

import json

import httpx
import pytest

import tmgmt_connect.core.database as database
from tmgmt_connect import config
from tmgmt_connect.logger import _clear_log_mode_cache


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    """Point the database at a fresh file and seed the default config."""
    monkeypatch.setattr(database, "DB_FILE", tmp_path / "test_tmgmt_connect.db")
    config.initialize_app()
    _clear_log_mode_cache()
    yield tmp_path / "test_tmgmt_connect.db"


@pytest.fixture
def configured():
    """Give both translators a url and an auth key."""
    config.save_translator_settings("lang_connector", {"url": "https://lc.example.test/translate",
                                                       "auth_key": "lc-key"})
    config.save_translator_settings("xtm_connect", {"url": "https://xtm.example.test/api",
                                                    "auth_key": "xtm-key"})
    return config.load_config()


class FakeRemote:
    """Records requests and answers them from a handler."""

    def __init__(self, handler=None):
        self.requests = []
        self.handler = handler or self.echo

    @staticmethod
    def echo(request, payload):
        return httpx.Response(200, json={"translations": [{"text": t} for t in payload.get("text", [])]})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content) if request.content else None
        self.requests.append((request, payload))
        return self.handler(request, payload)

    @property
    def payloads(self):
        return [payload for _, payload in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def item_data():
    """Build nested item data with one field per text."""
    def build(*texts):
        return {
            f"field_{index}": {"0": {"value": {"#text": text, "#label": f"Field {index}"}}}
            for index, text in enumerate(texts)
        }
    return build
