"""OpenAI chat completions proxy handler - forwards to NVIDIA NIM."""

import time
import logging
import requests
from flask import Blueprint, request, jsonify, Response, stream_with_context, current_app

from translator import (
    InboundRequest,
    StreamRelay,
    STREAM_HEADERS,
    translate_request,
    translate_response,
    build_error_envelope,
    extract_error_message,
)

logger = logging.getLogger(__name__)

proxy_bp = Blueprint('proxy', __name__)

COMPLETIONS_PATH = '/v1/chat/completions'


def get_config():
    """Get config from Flask app context."""
    return current_app.config['NIM_CONFIG']


def get_request_log():
    """Get the request log from Flask app context."""
    return current_app.config['REQUEST_LOG']


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)


@proxy_bp.route(COMPLETIONS_PATH, methods=['POST'])
def chat_completions():
    """
    Handle OpenAI /v1/chat/completions requests.

    Maps the model name, normalizes max_tokens and temperature, forwards
    to NIM and either reshapes the JSON response or relays the SSE stream.
    Every failure ends in a single proxy_error envelope.
    """
    start_time = time.time()
    config = get_config()
    request_log = get_request_log()

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        error = build_error_envelope(failure_message='Request body must be a JSON object', status_code=400)
        request_log.record_completion(400, _elapsed_ms(start_time), None, error)
        return jsonify(error), 400

    inbound = InboundRequest.from_dict(body)
    logger.info(f"-> {inbound.model} | msgs={inbound.message_count} | stream={inbound.stream}")

    headers = {
        'Authorization': f'Bearer {config.nim_api_key}',
        'Content-Type': 'application/json',
    }

    try:
        nim_request = translate_request(inbound, config)
        response = requests.post(
            config.completions_url,
            json=nim_request,
            headers=headers,
            stream=inbound.stream,
            timeout=config.request_timeout,
        )
        response.raise_for_status()

        if inbound.stream:
            return _handle_streaming(response, body, start_time, request_log)
        return _handle_non_streaming(response, inbound, body, start_time, request_log)

    except requests.exceptions.RequestException as e:
        status, error = _normalize_request_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error proxying request to NVIDIA NIM API: {e}")
        status, error = 500, build_error_envelope(failure_message=str(e))

    request_log.record_completion(status, _elapsed_ms(start_time), body, error)
    return jsonify(error), status


def _normalize_request_error(exc: requests.exceptions.RequestException):
    """Turn a requests failure into (status, error envelope)."""
    upstream = exc.response
    logger.error("Error proxying request to NVIDIA NIM API:")

    if upstream is None:
        # No response attached: connection errors, timeouts, and the
        # requests JSONDecodeError raised by response.json() on a malformed 2xx body
        logger.error(str(exc))
        return 500, build_error_envelope(failure_message=str(exc))

    try:
        error_data = upstream.json()
    except ValueError:
        error_data = upstream.text
    finally:
        upstream.close()

    logger.error(f"Status: {upstream.status_code}")
    logger.error(f"Data: {error_data}")

    error = build_error_envelope(
        upstream_message=extract_error_message(error_data),
        failure_message=f"Request failed with status code {upstream.status_code}",
        status_code=upstream.status_code,
    )
    return upstream.status_code, error


def _handle_non_streaming(response, inbound, body, start_time, request_log):
    """Reshape a buffered NIM response into an OpenAI chat completion."""
    openai_response = translate_response(response.json(), inbound.model)

    usage = openai_response.get('usage') or {}
    prompt_tokens = usage.get('prompt_tokens', 0) if isinstance(usage, dict) else 0
    completion_tokens = usage.get('completion_tokens', 0) if isinstance(usage, dict) else 0

    request_log.record_completion(200, _elapsed_ms(start_time), body, openai_response,
                                  prompt_tokens=prompt_tokens or 0,
                                  completion_tokens=completion_tokens or 0)

    finish_reasons = [c.get('finish_reason') for c in openai_response['choices']]
    logger.info(f"<- finish_reason={finish_reasons} | tokens={prompt_tokens}+{completion_tokens}")

    return jsonify(openai_response), 200


def _handle_streaming(response, body, start_time, request_log):
    """Relay the NIM SSE stream byte for byte."""
    def on_complete(summary):
        # The client already has a 200; a broken stream ends in a proxy_error frame
        status = 500 if summary['error'] else 200
        request_log.record_completion(status, _elapsed_ms(start_time), body, summary, streamed=True)
        if summary['error']:
            logger.error(f"<- stream failed after {summary['chunks']} chunks: {summary['error']}")
        else:
            logger.info(f"<- stream complete | {summary['chunks']} chunks, {summary['bytes']} bytes")

    relay = StreamRelay(response, on_complete=on_complete)

    return Response(
        stream_with_context(relay),
        status=200,
        content_type='text/event-stream',
        headers=STREAM_HEADERS,
    )
