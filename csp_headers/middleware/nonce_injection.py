"""
Nonce Injection Middleware

Buffers HTML responses and adds the request nonce to every <script>
opening tag that lacks one (see rewrite_service.rewrite).

The whole body is held in memory before the first byte is sent, because
the rewrite needs the complete document. Only uncompressed text/html
responses are buffered; everything else streams through untouched.

On malformed markup the original body is sent unchanged (fail open)
and a warning is logged.
"""

import logging

from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request

from csp_headers.exceptions import RewriteError
from csp_headers.services.rewrite_service import rewrite_bytes
from csp_headers.services.token_service import get_token

logger = logging.getLogger(__name__)


def get_charset(content_type: str) -> str:
    """Extract the charset parameter from a Content-Type value (utf-8 default)."""
    for param in content_type.split(";")[1:]:
        key, _, value = param.strip().partition("=")
        if key.lower() == "charset" and value:
            return value.strip('"').lower()
    return "utf-8"


class NonceInjectionMiddleware:
    """
    Pure ASGI middleware that rewrites buffered HTML bodies.

    Must run inside CSPNonceMiddleware in the middleware stack so the
    nonce already exists in request.state when the response is sent.
    """

    def __init__(self, app):
        self.app = app

    @staticmethod
    def _should_rewrite(scope, headers: Headers) -> bool:
        if scope.get("method") == "HEAD":
            return False
        if headers.get("content-encoding"):
            return False
        content_type = headers.get("content-type", "")
        return content_type.split(";")[0].strip().lower() == "text/html"

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        token = get_token(Request(scope))
        if not token:
            await self.app(scope, receive, send)
            return

        start_message = None
        body_parts = []
        passthrough = False

        async def send_wrapper(message):
            nonlocal start_message, passthrough

            if message["type"] == "http.response.start":
                headers = Headers(raw=message.get("headers", []))
                if not self._should_rewrite(scope, headers):
                    passthrough = True
                    await send(message)
                    return
                # Hold the headers until the full body is known
                start_message = message
                return

            if message["type"] == "http.response.body" and not passthrough:
                body_parts.append(message.get("body", b""))
                if message.get("more_body", False):
                    return
                await self._send_rewritten(
                    scope, start_message, b"".join(body_parts), token, send
                )
                return

            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _send_rewritten(self, scope, start_message, body, token, send):
        start_message["headers"] = list(start_message.get("headers", []))
        headers = MutableHeaders(raw=start_message["headers"])
        charset = get_charset(headers.get("content-type", ""))

        try:
            body = rewrite_bytes(body, token, charset)
        except RewriteError as e:
            logger.warning(
                f"Nonce injection skipped for {scope.get('path', '')}, "
                f"sending original body: {e}"
            )

        headers["Content-Length"] = str(len(body))
        await send(start_message)
        await send({"type": "http.response.body", "body": body, "more_body": False})
