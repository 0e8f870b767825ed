"""
Centralized template configuration.
"""

import os
from fastapi.templating import Jinja2Templates

PACKAGE_DIR = os.path.dirname(os.path.dirname(__file__))


def get_templates():
    """
    Get the Jinja2 templates instance.
    Call this once at module level in route files.
    """
    return Jinja2Templates(directory=os.path.join(PACKAGE_DIR, "templates"))


templates = get_templates()
