from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

HELLO_WORLD = "hello_world"
PORTFOLIO = "portfolio"
LANDING_PAGE = "landing_page"

DEFAULT_TEMPLATE = HELLO_WORLD

# First matching group wins; order matters for descriptions hitting several groups
KEYWORD_GROUPS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("portfolio", "resume"), PORTFOLIO),
    (("landing", "marketing"), LANDING_PAGE),
    (("hello", "world"), HELLO_WORLD),
)

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
    keep_trailing_newline=True,
    enable_async=False,
)


@lru_cache(maxsize=None)
def _document(name: str) -> str:
    # Documents are static; nothing from the description is passed in
    return _env.get_template(f"{name}.html").render()


def template_name_for(description: str) -> str:
    lowered = (description or "").lower()
    for keywords, name in KEYWORD_GROUPS:
        if any(k in lowered for k in keywords):
            return name
    return DEFAULT_TEMPLATE


def select_template(description: str) -> str:
    """Pick one of the fixed fallback documents by keyword match on ``description``."""
    return _document(template_name_for(description))


def template_documents() -> Dict[str, str]:
    return {name: _document(name) for name in (HELLO_WORLD, PORTFOLIO, LANDING_PAGE)}
