"""API translation layer between OpenAI and NVIDIA NIM formats."""

from .request import InboundRequest, translate_request
from .response import translate_response, build_error_envelope, extract_error_message
from .streaming import StreamRelay, STREAM_HEADERS

__all__ = [
    'InboundRequest', 'translate_request', 'translate_response',
    'build_error_envelope', 'extract_error_message', 'StreamRelay', 'STREAM_HEADERS',
]
