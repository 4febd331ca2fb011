"""Translate OpenAI chat completion requests to NVIDIA NIM format."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class InboundRequest:
    """The subset of an OpenAI chat completion request the proxy forwards."""
    model: Optional[str]
    messages: Any = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InboundRequest':
        """
        Build from a parsed JSON request body.

        Messages are passed through untouched; the upstream is left to
        validate them. Fields the proxy does not forward are kept in
        ``extra`` for logging only.
        """
        known_fields = {'model', 'messages', 'temperature', 'max_tokens', 'stream'}
        return cls(
            model=data.get('model'),
            messages=data.get('messages'),
            temperature=data.get('temperature'),
            max_tokens=data.get('max_tokens'),
            stream=bool(data.get('stream', False)),
            extra={k: v for k, v in data.items() if k not in known_fields},
        )

    @property
    def message_count(self) -> int:
        return len(self.messages) if isinstance(self.messages, list) else 0


def normalize_max_tokens(max_tokens: Any, threshold: int = 256, floor: int = 4096) -> Any:
    """
    Return the max_tokens value to send upstream.

    Values above ``threshold`` pass through verbatim. A numeric string is
    compared by its value and also forwarded unchanged, so ``"2000"`` reaches
    NIM as ``"2000"``. Anything else, including a missing, boolean or
    non-numeric value, is replaced by ``floor`` so completions are not cut
    short by low client limits.
    """
    if isinstance(max_tokens, bool):
        return floor
    value = max_tokens
    if isinstance(max_tokens, str):
        try:
            value = float(max_tokens)
        except ValueError:
            return floor
    if not isinstance(value, (int, float)):
        return floor
    if value > threshold:
        return max_tokens
    return floor


def normalize_temperature(temperature: Any, default: float = 0.7) -> Any:
    """Substitute ``default`` for an absent or falsy temperature."""
    return temperature or default


def translate_request(inbound: InboundRequest, config) -> Dict[str, Any]:
    """
    Translate an inbound request to a NIM /v1/chat/completions body.

    Args:
        inbound: The parsed client request
        config: Application config providing the model map and defaults

    Returns:
        NIM-compatible request body
    """
    nim_model = config.map_model_name(inbound.model)

    max_tokens = normalize_max_tokens(
        inbound.max_tokens,
        config.max_tokens_threshold,
        config.default_max_tokens,
    )
    if max_tokens != inbound.max_tokens:
        logger.debug(f"Replaced max_tokens={inbound.max_tokens} with {max_tokens}")

    if inbound.extra:
        logger.debug(f"Dropping unsupported fields: {sorted(inbound.extra)}")

    return {
        'model': nim_model,
        'messages': inbound.messages,
        'temperature': normalize_temperature(inbound.temperature, config.default_temperature),
        'max_tokens': max_tokens,
        'stream': inbound.stream,
    }
