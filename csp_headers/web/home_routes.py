"""
Home page routes.
"""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from csp_headers.utils.template_helpers import render_template

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return render_template(request, "pages/home.html")
