"""Search term highlighting for result titles and descriptions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).parent / "templates"
ENV = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(enabled_extensions=("html",)),
)


@dataclass(slots=True, frozen=True)
class Segment:
    text: str
    matched: bool


def highlight_segments(text: str, term: str) -> list[Segment]:
    if not term.strip():
        return [Segment(text, False)] if text else []
    pattern = re.compile(f"({re.escape(term)})", re.IGNORECASE)
    # With one capture group, split alternates unmatched and matched pieces.
    parts = pattern.split(text)
    return [Segment(part, index % 2 == 1) for index, part in enumerate(parts) if part]


def highlight(text: str, term: str, mark_class: str = "") -> str:
    segments = highlight_segments(text, term)
    template = ENV.get_template("highlight.html")
    return template.render(segments=segments, mark_class=mark_class)
