"""
Response Tracer

Wraps the ASGI `send` callable so the status code and body size of a
response become observable once the wrapped app returns.

  http.response.start  -> write_header()
  http.response.body   -> write()
  anything else        -> passed through
"""

from starlette.datastructures import MutableHeaders
from starlette.types import Message, Send

from observability.span import SpanContext


class ResponseTracer:
    """
    Pass-through response writer with observable status and size.

    status is 0 until the app writes something; a body written before
    any start message implies 200.
    """

    def __init__(self, send: Send, span: SpanContext):
        self._send = send
        self._status = 0
        self._size = 0
        self._headers = MutableHeaders(raw=[])
        self.span = span

    @property
    def span_id(self) -> int:
        return self.span.span_id

    @property
    def parent_span_id(self) -> int:
        return self.span.parent_span_id

    @property
    def headers(self) -> MutableHeaders:
        """Response headers as sent by the wrapped app."""
        return self._headers

    @property
    def status(self) -> int:
        return self._status

    @property
    def size(self) -> int:
        return self._size

    @property
    def started(self) -> bool:
        """Whether anything has been written to the client yet."""
        return self._status != 0

    async def write_header(self, message: Message) -> None:
        await self._send(message)
        self._status = message["status"]
        self._headers = MutableHeaders(raw=list(message.get("headers", [])))

    async def write(self, message: Message) -> None:
        if self._status == 0:
            self._status = 200
        await self._send(message)
        self._size += len(message.get("body", b""))

    async def send(self, message: Message) -> None:
        """The send callable handed to the wrapped app."""
        message_type = message["type"]
        if message_type == "http.response.start":
            await self.write_header(message)
        elif message_type == "http.response.body":
            await self.write(message)
        else:
            await self._send(message)
