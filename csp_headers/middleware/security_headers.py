"""
Security Headers Middleware
Adds the composed security headers to all responses.
"""

from starlette.middleware.base import BaseHTTPMiddleware

from csp_headers.schemas.policy import HeaderPolicy
from csp_headers.services.header_service import compose_headers
from csp_headers.services.token_service import issue_token


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    Headers implemented (see header_service.compose_headers):
    - Content-Security-Policy or Content-Security-Policy-Report-Only
    - Strict-Transport-Security
    - Permissions-Policy
    - Referrer-Policy
    - X-Content-Type-Options / X-Frame-Options

    The nonce comes from request.state, so the CSP header always carries
    the same token that NonceInjectionMiddleware writes into the body.
    """

    def __init__(self, app, policy: HeaderPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request, call_next):
        token = issue_token(request.state)

        # Process the request
        response = await call_next(request)

        for name, value in compose_headers(self.policy, token):
            response.headers[name] = value

        return response
