"""Configuration management for nim-proxy."""

import os
import logging
from types import MappingProxyType

logger = logging.getLogger(__name__)

DEFAULT_NIM_API_BASE = 'https://integrate.api.nvidia.com/v1'
DEFAULT_FALLBACK_MODEL = 'meta/llama-3.1-8b-instruct'

# Client-facing model name -> NVIDIA NIM model id
DEFAULT_MODEL_MAPPING = {
    'gpt-3.5-turbo': 'meta/llama-3.1-8b-instruct',
    'gpt-4': 'meta/llama-3.1-70b-instruct',
    'gpt-4-turbo': 'meta/llama-3.1-70b-instruct',
    'gpt-4o': 'deepseek-ai/deepseek-v2-chat',
    'claude-3-opus': 'meta/llama-3.1-405b-instruct',
    'claude-3-sonnet': 'meta/llama-3.1-70b-instruct',
    'gemini-pro': 'google/gemini-pro',
}


class ConfigError(Exception):
    """Raised when the environment cannot produce a usable configuration."""


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        # Server settings
        self.host = os.getenv('HOST', '0.0.0.0')
        self.port = self._get_int('PORT', 3000)

        # Upstream endpoint
        self.nim_api_key = os.getenv('NIM_API_KEY')
        if not self.nim_api_key:
            raise ConfigError('NIM_API_KEY environment variable is not set.')
        self.nim_api_base = os.getenv('NIM_API_BASE', DEFAULT_NIM_API_BASE).rstrip('/')
        self.request_timeout = self._get_float('UPSTREAM_TIMEOUT', None)

        # Model configuration
        mapping = dict(DEFAULT_MODEL_MAPPING)
        mapping.update(self._parse_model_mapping(os.getenv('MODEL_MAPPING', '')))
        self.model_mapping = MappingProxyType(mapping)
        self.fallback_model = os.getenv('FALLBACK_MODEL', DEFAULT_FALLBACK_MODEL)

        # Parameter normalization
        self.max_tokens_threshold = self._get_int('MAX_TOKENS_THRESHOLD', 256)
        self.default_max_tokens = self._get_int('DEFAULT_MAX_TOKENS', 4096)
        self.default_temperature = self._get_float('DEFAULT_TEMPERATURE', 0.7)

    @property
    def completions_url(self) -> str:
        return f"{self.nim_api_base}/chat/completions"

    def _get_int(self, name: str, default):
        value = os.getenv(name)
        if value is None or value.strip() == '':
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"{name} must be an integer, got {value!r}")

    def _get_float(self, name: str, default):
        value = os.getenv(name)
        if value is None or value.strip() == '':
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigError(f"{name} must be a number, got {value!r}")

    def _parse_model_mapping(self, mapping_str: str) -> dict:
        """Parse model mapping from environment (format: source=target,source2=target2)."""
        mapping = {}
        if not mapping_str:
            return mapping

        for pair in mapping_str.split(','):
            if '=' in pair:
                source, target = pair.split('=', 1)
                if source.strip() and target.strip():
                    mapping[source.strip()] = target.strip()
            elif pair.strip():
                logger.warning(f"Ignoring malformed MODEL_MAPPING entry: {pair.strip()!r}")

        return mapping

    def map_model_name(self, model: str) -> str:
        """
        Map a client-facing model name to the NIM model id.

        Unknown names fall back to the configured default model rather than
        being rejected.
        """
        mapped = self.model_mapping.get(model) if isinstance(model, str) else None
        if mapped:
            logger.debug(f"Model mapping: {model} -> {mapped}")
            return mapped

        logger.debug(f"No model mapping for {model}, using fallback {self.fallback_model}")
        return self.fallback_model

    def to_dict(self) -> dict:
        """Return configuration as dictionary (credential redacted)."""
        return {
            'host': self.host,
            'port': self.port,
            'nim_api_base': self.nim_api_base,
            'api_key_configured': bool(self.nim_api_key),
            'model_mapping': dict(self.model_mapping),
            'fallback_model': self.fallback_model,
            'max_tokens_threshold': self.max_tokens_threshold,
            'default_max_tokens': self.default_max_tokens,
            'default_temperature': self.default_temperature,
            'request_timeout': self.request_timeout,
        }
