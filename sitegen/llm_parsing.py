from __future__ import annotations

import re

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\n([\s\S]*?)\n?```$")


def html_from_text(text: str) -> str:
    """Extract the HTML document from a completion; raise on empty input.

    Models often wrap the page in a ```html fence despite being told not to.
    When the whole reply is one fenced block the fence is removed, otherwise
    the text is returned as-is (stripped). No attempt is made to check that
    the result is valid HTML.
    """
    t = (text or "").strip()
    if not t:
        raise ValueError("empty completion")
    m = _FENCE_RE.match(t)
    if m:
        body = m.group(1).strip()
        if body:
            return body
        raise ValueError("empty fenced block")
    return t
