"""In-memory record of proxied completions and proxy lifecycle events.

Flask serves requests on several threads, so every read and write of the
shared buffers and counters happens under one lock.
"""

import copy
import time
import logging
import threading
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_LOGGED_CONTENT = 500
TRUNCATION_MARKER = '... [truncated]'


@dataclass
class CompletionCounters:
    """Running totals for /v1/chat/completions since startup or last reset."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    streamed_requests: int = 0
    total_prompt_tokens: int = 0
    total_completion_tokens: int = 0
    success_latency_ms: int = 0
    started_at: float = field(default_factory=time.time)

    def add(self, failed: bool, streamed: bool, duration_ms: int,
            prompt_tokens: int, completion_tokens: int):
        self.total_requests += 1
        if streamed:
            self.streamed_requests += 1
        if failed:
            self.failed_requests += 1
            return
        self.successful_requests += 1
        self.success_latency_ms += duration_ms
        self.total_prompt_tokens += prompt_tokens
        self.total_completion_tokens += completion_tokens

    def snapshot(self) -> Dict:
        data = asdict(self)
        data.pop('success_latency_ms')
        data.pop('started_at')
        data['total_tokens'] = self.total_prompt_tokens + self.total_completion_tokens
        data['avg_latency_ms'] = (
            round(self.success_latency_ms / self.successful_requests)
            if self.successful_requests else 0
        )
        data['uptime_seconds'] = round(time.time() - self.started_at)
        return data


class RequestLog:
    """Bounded history of completions and events, plus usage counters."""

    def __init__(self, capacity: int = 100):
        self._lock = threading.Lock()
        self._completions: deque = deque(maxlen=capacity)
        self._events: deque = deque(maxlen=capacity)
        self._counters = CompletionCounters()

    def record_completion(
        self,
        status: int,
        duration_ms: int,
        request_body: Optional[Dict] = None,
        result: Optional[Dict] = None,
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
        streamed: bool = False,
    ):
        """
        Record one finished completion call.

        A status of 400 or above counts as a failure. Streams that break after
        the 200 was sent are recorded by the caller with the status of the
        error frame they ended with.
        """
        failed = status >= 400
        entry = {
            'timestamp': time.time(),
            'status': status,
            'outcome': 'failed' if failed else 'ok',
            'model': request_body.get('model') if isinstance(request_body, dict) else None,
            'streamed': streamed,
            'duration_ms': duration_ms,
            'prompt_tokens': prompt_tokens,
            'completion_tokens': completion_tokens,
            'request': _shorten_content(request_body),
            'result': _shorten_content(result),
        }

        with self._lock:
            self._completions.appendleft(entry)
            self._counters.add(failed, streamed, duration_ms, prompt_tokens, completion_tokens)

        logger.debug(f"recorded completion status={status} streamed={streamed} ({duration_ms}ms)")

    def record_event(self, level: str, message: str, data: Optional[Dict] = None):
        entry = {'timestamp': time.time(), 'level': level, 'message': message, 'data': data}
        with self._lock:
            self._events.appendleft(entry)
        getattr(logger, level.lower(), logger.info)(message)

    def recent_completions(self, limit: int = 50) -> List[Dict]:
        with self._lock:
            return list(self._completions)[:max(limit, 0)]

    def recent_events(self, limit: int = 50) -> List[Dict]:
        with self._lock:
            return list(self._events)[:max(limit, 0)]

    def usage(self) -> Dict:
        with self._lock:
            return self._counters.snapshot()

    def clear(self):
        """Drop recorded completions and events. Counters are kept."""
        with self._lock:
            self._completions.clear()
            self._events.clear()
        logger.info("Request log cleared")

    def reset_usage(self):
        with self._lock:
            self._counters = CompletionCounters()
        logger.info("Usage counters reset")


def _shorten_content(payload):
    """Deep copy a request or response body with long message content cut."""
    if not isinstance(payload, dict):
        return payload

    payload = copy.deepcopy(payload)
    messages = list(payload.get('messages') or [])
    for choice in payload.get('choices') or []:
        if isinstance(choice, dict):
            messages.append(choice.get('message'))

    for message in messages:
        if not isinstance(message, dict):
            continue
        content = message.get('content')
        if isinstance(content, str) and len(content) > MAX_LOGGED_CONTENT:
            message['content'] = content[:MAX_LOGGED_CONTENT] + TRUNCATION_MARKER

    return payload
