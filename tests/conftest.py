"""Shared fixtures for nim-proxy tests."""

import json

import pytest
import requests

from app import create_app
from config import Config

NIM_URL = 'https://integrate.api.nvidia.com/v1/chat/completions'

CONFIG_ENV_VARS = (
    'HOST', 'PORT', 'NIM_API_BASE', 'MODEL_MAPPING', 'FALLBACK_MODEL',
    'MAX_TOKENS_THRESHOLD', 'DEFAULT_MAX_TOKENS', 'DEFAULT_TEMPERATURE',
    'UPSTREAM_TIMEOUT',
)


class FakeRaw:
    """Stands in for the urllib3 response behind a streamed requests.Response."""

    def __init__(self, chunks, error=None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    def stream(self, chunk_size=None, decode_content=True):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True

    def release_conn(self):
        pass


@pytest.fixture
def nim_env(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('NIM_API_KEY', 'test-nim-key')


@pytest.fixture
def config(nim_env):
    return Config()


@pytest.fixture
def app(config):
    flask_app = create_app(config)
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_upstream():
    """
    Build real requests.Response objects for the mocked upstream.

    Pass ``json_data`` or ``body`` for a buffered response, or ``chunks``
    (and optionally ``error``) for a streamed one.
    """
    def _make(status_code=200, json_data=None, body=None, chunks=None, error=None):
        response = requests.Response()
        response.status_code = status_code
        response.url = NIM_URL
        response.reason = 'OK' if status_code < 400 else 'Error'
        response.raw = FakeRaw(chunks or [], error)
        if json_data is not None:
            body = json.dumps(json_data).encode('utf-8')
        if body is not None:
            response._content = body
            response._content_consumed = True
        return response

    return _make
