"""HTTP request node."""
import asyncio

import httpx

from ..engine.errors import Aborted
from .base import NodeBehavior, data_in, data_out, exec_in, exec_out

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD")


class HttpRequestNode(NodeBehavior):
    TYPE = "http.request"
    TITLE = "HTTP Request"
    CATEGORY = "Network"
    DESCRIPTION = "Perform an HTTP request; headers come from node state"

    # Swapped for httpx.MockTransport in tests.
    transport: httpx.AsyncBaseTransport | None = None
    timeout: float = 30.0

    @classmethod
    def INPUT_TYPES(cls):
        return [
            exec_in(),
            data_in("url", "string", "URL"),
            data_in("method", "string", "Method", default="GET"),
            data_in("body", "any", "Body"),
        ]

    @classmethod
    def RETURN_TYPES(cls):
        return [
            exec_out(),
            data_out("status", "number", "Status"),
            data_out("text", "string", "Text"),
            data_out("json", "any", "JSON"),
        ]

    async def run(self, ctx):
        url = str(ctx.inputs.get("url") or ctx.state.get("url") or "")
        method = str(ctx.inputs.get("method") or ctx.state.get("method") or "GET").upper()
        body = ctx.inputs.get("body")
        if not url:
            raise ValueError("URL required")
        if method not in METHODS:
            raise ValueError(f"Unsupported method {method}")

        kwargs = {"headers": ctx.state.get("headers") or {}}
        if body is not None and method not in ("GET", "HEAD"):
            if isinstance(body, (dict, list)):
                kwargs["json"] = body
            else:
                kwargs["content"] = str(body)

        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            request = asyncio.ensure_future(client.request(method, url, **kwargs))
            cancelled = asyncio.ensure_future(ctx.signal.wait())
            done, _ = await asyncio.wait(
                {request, cancelled}, return_when=asyncio.FIRST_COMPLETED,
            )
            cancelled.cancel()
            if request not in done:
                request.cancel()
                raise Aborted(ctx.signal.reason)
            response = request.result()

        try:
            payload = response.json()
        except ValueError:
            payload = None
        return {"status": response.status_code, "text": response.text, "json": payload}
