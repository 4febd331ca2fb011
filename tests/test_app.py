"""Tests for application startup."""

from typing import Optional, get_type_hints
from unittest.mock import patch

import pytest
from flask import Flask

import app as app_module
from config import Config, ConfigError


def test_missing_api_key_exits_before_listening(nim_env, monkeypatch):
    monkeypatch.delenv('NIM_API_KEY')

    with patch.object(Flask, 'run') as run:
        with pytest.raises(SystemExit) as exc_info:
            app_module.main()

    assert exc_info.value.code == 1
    run.assert_not_called()


def test_invalid_numeric_setting_exits(nim_env, monkeypatch):
    monkeypatch.setenv('DEFAULT_MAX_TOKENS', 'lots')

    with patch.object(Flask, 'run') as run:
        with pytest.raises(SystemExit):
            app_module.main()

    run.assert_not_called()


def test_main_serves_on_configured_port(nim_env, monkeypatch):
    monkeypatch.setenv('PORT', '4321')

    with patch.object(Flask, 'run') as run:
        app_module.main()

    run.assert_called_once()
    assert run.call_args.kwargs['port'] == 4321
    assert run.call_args.kwargs['threaded'] is True


def test_main_defaults_to_port_3000(nim_env):
    with patch.object(Flask, 'run') as run:
        app_module.main()

    assert run.call_args.kwargs['port'] == 3000


def test_create_app_without_key_raises(nim_env, monkeypatch):
    monkeypatch.delenv('NIM_API_KEY')
    with pytest.raises(ConfigError):
        app_module.create_app()


def test_create_app_uses_given_config(config):
    flask_app = app_module.create_app(config)

    assert flask_app.config['NIM_CONFIG'] is config
    assert isinstance(flask_app.config['NIM_CONFIG'], Config)
    rules = {rule.rule for rule in flask_app.url_map.iter_rules()}
    assert {'/health', '/v1/models', '/v1/chat/completions'} <= rules


def test_create_app_config_is_optional():
    assert get_type_hints(app_module.create_app)['config'] == Optional[Config]
