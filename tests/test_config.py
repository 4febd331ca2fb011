"""Tests for environment-driven configuration."""

import pytest

from config import Config, ConfigError, DEFAULT_MODEL_MAPPING, DEFAULT_FALLBACK_MODEL


class TestConfigLoading:

    def test_defaults(self, config):
        assert config.port == 3000
        assert config.host == '0.0.0.0'
        assert config.nim_api_key == 'test-nim-key'
        assert config.completions_url == 'https://integrate.api.nvidia.com/v1/chat/completions'
        assert config.request_timeout is None
        assert config.max_tokens_threshold == 256
        assert config.default_max_tokens == 4096
        assert config.default_temperature == 0.7
        assert dict(config.model_mapping) == DEFAULT_MODEL_MAPPING

    def test_missing_api_key_raises(self, nim_env, monkeypatch):
        monkeypatch.delenv('NIM_API_KEY')
        with pytest.raises(ConfigError, match='NIM_API_KEY'):
            Config()

    def test_empty_api_key_raises(self, nim_env, monkeypatch):
        monkeypatch.setenv('NIM_API_KEY', '')
        with pytest.raises(ConfigError):
            Config()

    def test_port_and_base_override(self, nim_env, monkeypatch):
        monkeypatch.setenv('PORT', '8080')
        monkeypatch.setenv('NIM_API_BASE', 'http://localhost:9000/v1/')
        config = Config()
        assert config.port == 8080
        assert config.completions_url == 'http://localhost:9000/v1/chat/completions'

    def test_invalid_port_raises(self, nim_env, monkeypatch):
        monkeypatch.setenv('PORT', 'eighty')
        with pytest.raises(ConfigError, match='PORT'):
            Config()

    def test_timeout_parsed_as_seconds(self, nim_env, monkeypatch):
        monkeypatch.setenv('UPSTREAM_TIMEOUT', '30')
        assert Config().request_timeout == 30.0

    def test_model_mapping_env_extends_and_overrides(self, nim_env, monkeypatch):
        monkeypatch.setenv('MODEL_MAPPING', 'gpt-4=meta/llama-3.3-70b-instruct, my-model = mistralai/mixtral,junk')
        config = Config()
        assert config.model_mapping['gpt-4'] == 'meta/llama-3.3-70b-instruct'
        assert config.model_mapping['my-model'] == 'mistralai/mixtral'
        assert config.model_mapping['gpt-4o'] == 'deepseek-ai/deepseek-v2-chat'
        assert 'junk' not in config.model_mapping

    def test_model_mapping_is_read_only(self, config):
        with pytest.raises(TypeError):
            config.model_mapping['gpt-4'] = 'something-else'

    def test_to_dict_redacts_key(self, config):
        data = config.to_dict()
        assert data['api_key_configured'] is True
        assert 'test-nim-key' not in str(data)


class TestModelMapping:

    @pytest.mark.parametrize('model', sorted(DEFAULT_MODEL_MAPPING))
    def test_known_models_map(self, config, model):
        assert config.map_model_name(model) == DEFAULT_MODEL_MAPPING[model]

    @pytest.mark.parametrize('model', ['unknown-model', 'GPT-4', '', None])
    def test_unknown_models_fall_back(self, config, model):
        assert config.map_model_name(model) == DEFAULT_FALLBACK_MODEL

    def test_fallback_configurable(self, nim_env, monkeypatch):
        monkeypatch.setenv('FALLBACK_MODEL', 'google/gemma-2-9b-it')
        assert Config().map_model_name('unknown-model') == 'google/gemma-2-9b-it'
