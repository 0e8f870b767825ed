"""
Nonce Injection Service

Adds nonce="<token>" to every <script> opening tag of a rendered HTML
body that does not already declare a nonce.

The body is scanned as markup rather than matched with a single regex:
- Comments are skipped
- Every start tag is consumed whole, so "<script" inside a quoted
  attribute value is never treated as a tag
- The raw text of script/style/textarea/title elements is skipped up to
  the matching end tag, so "<script" inside inline JS/JSON is ignored

Only the attribute insertion changes the output; every other character
is copied as-is. Running the rewrite twice gives the same result as
running it once.
"""

import re
from typing import List

from markupsafe import escape

from csp_headers.exceptions import RewriteError

# Start of a comment or of a start tag
MARKUP_RE = re.compile(r"<(?:!--|[A-Za-z])")
# A quote opens a value only right after "=", as in alt=it's
START_TAG_RE = re.compile(
    r"""<(?P<name>[A-Za-z][A-Za-z0-9:-]*)"""
    r"""(?P<attrs>(?:[^>=]|=\s*"[^"]*"|=\s*'[^']*'|=(?!\s*["']))*)>""",
    re.S,
)
ATTR_RE = re.compile(r"""([^\s"'>/=]+)(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+))?""")

RAW_TEXT_ELEMENTS = {"script", "style", "textarea", "title"}


def has_nonce(attrs: str) -> bool:
    """Check whether a tag's attribute text declares a nonce attribute."""
    return any(m.group(1).lower() == "nonce" for m in ATTR_RE.finditer(attrs))


def _end_of_raw_text(body: str, name: str, pos: int) -> int:
    """Return the index just past </name> starting the search at pos."""
    end_tag = re.compile(rf"</{name}(?=[\s/>])[^>]*>", re.I)
    match = end_tag.search(body, pos)
    if match is None:
        raise RewriteError(f"unterminated <{name}> element at offset {pos}")
    return match.end()


def rewrite(body: str, token: str) -> str:
    """
    Inject the nonce into every script opening tag lacking one.

    Args:
        body: Fully rendered HTML
        token: Request nonce

    Returns:
        HTML with nonce attributes added

    Raises:
        RewriteError: On an unterminated comment, tag or script element
    """
    nonce_attr = f' nonce="{escape(token)}"'
    parts: List[str] = []
    copied = 0  # body[:copied] is already in parts
    pos = 0

    while True:
        match = MARKUP_RE.search(body, pos)
        if match is None:
            break
        start = match.start()

        if match.group(0) == "<!--":
            end = body.find("-->", match.end())
            if end == -1:
                raise RewriteError(f"unterminated comment at offset {start}")
            pos = end + 3
            continue

        tag = START_TAG_RE.match(body, start)
        if tag is None:
            raise RewriteError(f"unterminated tag at offset {start}")
        pos = tag.end()

        name = tag.group("name").lower()
        if name == "script" and not has_nonce(tag.group("attrs")):
            insert_at = start + 1 + len(tag.group("name"))
            parts.append(body[copied:insert_at])
            parts.append(nonce_attr)
            copied = insert_at

        if name in RAW_TEXT_ELEMENTS:
            pos = _end_of_raw_text(body, name, pos)

    parts.append(body[copied:])
    return "".join(parts)


def rewrite_bytes(body: bytes, token: str, charset: str = "utf-8") -> bytes:
    """
    Byte-level wrapper around rewrite() for response bodies.

    Raises:
        RewriteError: If the body cannot be decoded with charset
    """
    try:
        text = body.decode(charset)
    except (UnicodeDecodeError, LookupError) as e:
        raise RewriteError(f"cannot decode body as {charset}: {e}") from e
    return rewrite(text, token).encode(charset)
