"""Translate NVIDIA NIM responses and errors back to OpenAI format."""

import json
import time
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

ERROR_TYPE = 'proxy_error'
GENERIC_ERROR_MESSAGE = 'An internal server error occurred.'


class MalformedResponseError(ValueError):
    """The upstream returned a 2xx body that cannot be reshaped."""


def translate_response(
    nim_response: Dict[str, Any],
    requested_model: Optional[str],
) -> Dict[str, Any]:
    """
    Translate a NIM /v1/chat/completions response to OpenAI format.

    Args:
        nim_response: The NIM API response body
        requested_model: The model name the client asked for, echoed back
            instead of the NIM model id

    Returns:
        OpenAI-compatible chat completion body
    """
    if not isinstance(nim_response, dict):
        raise MalformedResponseError('Upstream response is not a JSON object')

    choices = nim_response.get('choices')
    if not isinstance(choices, list):
        raise MalformedResponseError('Upstream response has no choices')

    return {
        'id': nim_response.get('id') or f"chatcmpl-{int(time.time() * 1000)}",
        'object': 'chat.completion',
        'created': nim_response.get('created') or int(time.time()),
        'model': requested_model,
        'choices': [_translate_choice(choice) for choice in choices],
        'usage': nim_response.get('usage'),
    }


def _translate_choice(choice: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only index, role/content and finish_reason of a choice."""
    if not isinstance(choice, dict):
        raise MalformedResponseError('Upstream choice is not a JSON object')
    message = choice.get('message') or {}
    return {
        'index': choice.get('index'),
        'message': {
            'role': message.get('role'),
            'content': message.get('content'),
        },
        'finish_reason': choice.get('finish_reason'),
    }


def extract_error_message(error_body: Any) -> Optional[str]:
    """
    Pull the human-readable message out of an upstream error body.

    Expects ``{"error": {"message": ...}}`` but tolerates a bare string
    ``error`` value. Returns None when no message is present.
    """
    if not isinstance(error_body, dict):
        return None
    error_info = error_body.get('error')
    if isinstance(error_info, str):
        return error_info or None
    if isinstance(error_info, dict):
        message = error_info.get('message')
        if isinstance(message, str) and message:
            return message
    return None


def build_error_envelope(
    upstream_message: Optional[str] = None,
    failure_message: Optional[str] = None,
    status_code: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Build the uniform error body returned for every failure.

    The message prefers the upstream's own message, then the failure's
    message, then a generic fallback. ``code`` is only present when an
    upstream status is known.
    """
    error = {
        'message': upstream_message or failure_message or GENERIC_ERROR_MESSAGE,
        'type': ERROR_TYPE,
    }
    if status_code is not None:
        error['code'] = status_code
    return {'error': error}


def build_error_chunk(message: Optional[str]) -> bytes:
    """Build the final SSE frame written when a stream breaks mid-flight."""
    envelope = build_error_envelope(failure_message=message)
    return f"data: {json.dumps(envelope)}\n\n".encode('utf-8')
