"""
Template Helper Functions

Renders pages with the request nonce in the template context, for
inline scripts and styles written with nonce="{{ csp_nonce }}".
"""

from typing import Optional

from fastapi import Request

from csp_headers.config import settings
from csp_headers.services.token_service import get_token
from csp_headers.utils.template_config import templates


def get_common_context(request: Request) -> dict:
    """
    Build common template context for all routes.

    Returns:
        Dictionary with request-specific template variables
    """
    return {
        "app_name": settings.APP_NAME,
        "csp_nonce": get_token(request),
    }


def render_template(
    request: Request,
    template_name: str,
    context: Optional[dict] = None,
):
    common_context = get_common_context(request)
    common_context.update(context or {})
    return templates.TemplateResponse(request, template_name, common_context)
