"""
ResourceApi - JSON resource handlers.

Whatever a verb handler returns (other than None) is the response body:
``str`` is sent as plain text, anything else as JSON. Success responses
carry the same ``x-*`` decoration headers as errors.

Example:
    class ThirdApi(ResourceApi):
        def do_get(self, exchange, a=None, b=None, c=None):
            return {"a": a, "b": b, "c": c}
"""

from typing import Any

from .dispatcher import RequestDispatcher
from .exchange import HttpExchange


class ResourceApi(RequestDispatcher):

    async def on_result(self, exchange: HttpExchange, result: Any) -> None:
        if result is None or exchange.response.finished:
            return
        await self.send_data(exchange, result)

    async def send_data(self, exchange: HttpExchange, data: Any) -> None:
        """Send ``data`` with status 200 and the decoration headers."""
        response = exchange.response
        response.status(200)
        self.decorate(exchange)
        if isinstance(data, str):
            response.set_header("content-type", "text/plain; charset=utf-8")
            response.send(data)
        elif isinstance(data, bytes):
            response.send(data)
        else:
            response.json(data)
