"""
Security Pipeline

Plain function composition of the three request stages, for callers that
do not go through the ASGI middleware stack:

    issue token -> compose headers -> write headers -> render -> rewrite -> write body
"""

import logging
from types import SimpleNamespace
from typing import Any, Callable, Optional

from csp_headers.exceptions import RewriteError
from csp_headers.schemas.policy import HeaderPolicy
from csp_headers.services.header_service import HeaderSet, compose_headers
from csp_headers.services.rewrite_service import rewrite
from csp_headers.services.token_service import issue_token

logger = logging.getLogger(__name__)


class SecurityPipeline:
    """
    Runs one request through the nonce-consistent header/content pipeline.

    Usage:
        pipeline = SecurityPipeline(load_policy())
        pipeline.handle(render_page, request, response.set_headers, response.write)
    """

    def __init__(self, policy: HeaderPolicy):
        self.policy = policy

    def handle(
        self,
        render: Callable[[Any], str],
        request: Any,
        header_sink: Callable[[HeaderSet], None],
        body_sink: Callable[[str], None],
        state: Optional[Any] = None,
    ) -> str:
        """
        Process one request.

        Args:
            render: Page renderer, called with the request
            request: Opaque request object passed to render
            header_sink: Receives the composed headers before any body output
            body_sink: Receives the final body
            state: Per-request state holding the token (a fresh one if omitted)

        Returns:
            The token used for this request
        """
        state = state if state is not None else SimpleNamespace()
        token = issue_token(state)

        header_sink(compose_headers(self.policy, token))

        body = render(request)
        try:
            body = rewrite(body, token)
        except RewriteError as e:
            logger.warning(f"Nonce injection skipped, sending original body: {e}")

        body_sink(body)
        return token
