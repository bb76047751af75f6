"""Splitting of the modem's byte stream into classified response lines."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

from .queue import Response

log = logging.getLogger(__name__)

DEFAULT_CAPACITY = 4096

_CLASSIFIERS: tuple[tuple[bytes, Response], ...] = (
    (b"OK", Response.OK),
    (b"ERROR", Response.ERROR),
    (b"> ", Response.SMS_PROMPT),
    (b"+CMGR:", Response.CMGR),
    (b"+CSSI:", Response.CSSI),
)

_SKIP_CRLF_BEFORE = (b"\r\n+CSSU:", b"\r\n+CMS ERROR:", b"\r\n+CMGS:")
_MULTILINE = (b"+CMGR:", b"+CNUM:", b"ERROR+CNUM:", b"+CLCC:")
_MULTILINE_END = b"\n\r\nOK\r\n"
_CSSI_LENGTH = 8


class ResponseReader:
    """Buffers bytes received from the modem and yields complete responses.

    Each response is returned as ``(Response, line)`` where ``line`` is the
    text of the response without its terminating carriage return.
    """

    def __init__(self, device: str = "", capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.device = device
        self.capacity = capacity
        self._buffer = bytearray()
        self._in_result = False

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def free(self) -> int:
        return self.capacity - len(self._buffer)

    def feed(self, data: bytes) -> int:
        """Append received bytes; raise BufferError if they do not fit."""
        if len(data) > self.free:
            log.error("[%s] at cmd receive buffer overflow", self.device)
            raise BufferError(
                f"[{self.device}] {len(data)} bytes do not fit in {self.free} free"
            )
        self._buffer.extend(data)
        return len(data)

    def read_from(self, fd: int) -> int:
        """Read what is available from ``fd`` into the buffer.

        Returns the number of bytes read; 0 when the read was interrupted or
        would block. Raises BufferError when the buffer is full.
        """
        free = self.free
        if free <= 0:
            log.error("[%s] at cmd receive buffer overflow", self.device)
            raise BufferError(f"[{self.device}] receive buffer is full")
        try:
            data = os.read(fd, free)
        except (InterruptedError, BlockingIOError):
            return 0
        self._buffer.extend(data)
        if data:
            log.debug(
                "[%s] receive %d byte, used %d, free %d",
                self.device,
                len(data),
                len(self._buffer),
                self.free,
            )
        return len(data)

    def _next_chunk(self) -> bytes | None:
        buf = self._buffer
        while buf:
            if not self._in_result:
                if len(buf) < 2:
                    return None
                if buf.startswith(b"\r\n"):
                    del buf[:2]
                    self._in_result = True
                    continue
                if buf.startswith(b"\n"):
                    log.debug("[%s] multiline response", self.device)
                    del buf[:1]
                    continue
                cr = buf.find(b"\r")
                del buf[: cr + 1 if cr >= 0 else len(buf)]
                continue

            if buf.startswith(b"+CSSI:"):
                if len(buf) >= _CSSI_LENGTH:
                    self._in_result = False
                    return bytes(buf[:_CSSI_LENGTH])
                return None
            if buf.startswith(_SKIP_CRLF_BEFORE):
                del buf[:2]
                continue
            if buf.startswith(b"> "):
                self._in_result = False
                return bytes(buf[:2])
            if buf.startswith(_MULTILINE):
                end = buf.find(_MULTILINE_END)
                if end > 0:
                    self._in_result = False
                    return bytes(buf[:end])
                return None
            end = buf.find(b"\r\n")
            if end >= 0:
                self._in_result = False
                return bytes(buf[: end + 1])
            return None
        return None

    def _classify(self, length: int) -> Response:
        result = Response.UNKNOWN
        for prefix, res in _CLASSIFIERS:
            if self._buffer.startswith(prefix):
                result = res
                break
        if result is Response.SMS_PROMPT:
            consumed = 2
        elif result is Response.CMGR:
            consumed = length + len(_MULTILINE_END)
        elif result is Response.CSSI:
            consumed = _CSSI_LENGTH
        else:
            consumed = length + 1
        del self._buffer[:consumed]
        return result

    def next_result(self) -> tuple[Response, bytes] | None:
        """Return the next complete response, or None if more data is needed."""
        chunk = self._next_chunk()
        if chunk is None:
            return None
        res = self._classify(len(chunk))
        line = chunk[:-1] if chunk.endswith(b"\r") else chunk
        return res, line

    def results(self) -> Iterator[tuple[Response, bytes]]:
        """Yield every complete response currently buffered."""
        while (item := self.next_result()) is not None:
            yield item