"""Relay NVIDIA NIM SSE streams to the client without reframing."""

import time
import logging
from typing import Callable, Dict, Iterator, Optional

import requests

from .response import build_error_chunk

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    'Cache-Control': 'no-cache',
    'Connection': 'keep-alive',
    'X-Accel-Buffering': 'no',
}


class StreamRelay:
    """
    Forward the raw bytes of an upstream streaming response.

    Chunks are yielded as soon as they arrive, unmodified and in order. The
    relay does not parse SSE frames.

    Once iteration has started the HTTP status is already committed, so an
    upstream failure cannot become a normal error response. Instead one final
    SSE frame carrying the error envelope is emitted and the stream ends.
    A client disconnect just closes the upstream connection.
    """

    def __init__(
        self,
        upstream: requests.Response,
        on_complete: Optional[Callable[[Dict], None]] = None,
    ):
        self.upstream = upstream
        self.on_complete = on_complete
        self.bytes_relayed = 0
        self.chunks_relayed = 0
        self.error: Optional[str] = None
        self.client_disconnected = False
        self._start_time = time.time()

    def __iter__(self) -> Iterator[bytes]:
        try:
            # chunk_size=None yields data as it arrives instead of filling a buffer
            for chunk in self.upstream.iter_content(chunk_size=None):
                if not chunk:
                    continue
                self.bytes_relayed += len(chunk)
                self.chunks_relayed += 1
                yield chunk

        except GeneratorExit:
            self.client_disconnected = True
            logger.warning("Client disconnected during stream")

        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.error(f"Upstream stream failed after {self.bytes_relayed} bytes: {self.error}")
            yield build_error_chunk(self.error)

        finally:
            self.upstream.close()
            self._report()

    def summary(self) -> Dict:
        return {
            'streaming': True,
            'bytes': self.bytes_relayed,
            'chunks': self.chunks_relayed,
            'duration_ms': int((time.time() - self._start_time) * 1000),
            'error': self.error,
            'client_disconnected': self.client_disconnected,
        }

    def _report(self):
        if self.on_complete is None:
            return
        try:
            self.on_complete(self.summary())
        except Exception:
            logger.exception("Stream completion callback failed")
