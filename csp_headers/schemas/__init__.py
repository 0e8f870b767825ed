from csp_headers.schemas.policy import (
    DEFAULT_PERMISSIONS_POLICY,
    DEFAULT_SOURCE_LISTS,
    HeaderPolicy,
)

__all__ = [
    "DEFAULT_PERMISSIONS_POLICY",
    "DEFAULT_SOURCE_LISTS",
    "HeaderPolicy",
]
