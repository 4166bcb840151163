"""Rendering helpers for transactional booking emails."""
from __future__ import annotations

import html
import re
from pathlib import Path
from typing import Any, Dict, Tuple

_TEMPLATE_PATH = Path(__file__).resolve().parent / "templates"
_PLACEHOLDER_PATTERN = re.compile(r"{{\s*(\w+)\s*}}")


def _load_template(template: str) -> str:
    path = _TEMPLATE_PATH / template
    return path.read_text(encoding="utf-8")


def _render_template(template: str, context: Dict[str, Any], *, escape: bool) -> str:
    source = _load_template(template)

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        value = context.get(key, "")
        rendered = "" if value is None else str(value)
        return html.escape(rendered) if escape else rendered

    return _PLACEHOLDER_PATTERN.sub(_replace, source)


def _render_subject_body(base_template: str, context: Dict[str, Any]) -> Tuple[str, str, str]:
    subject = _render_template(f"{base_template}_subject.txt.j2", context, escape=False)
    text_body = _render_template(f"{base_template}_body.txt.j2", context, escape=False)
    html_body = _render_template(f"{base_template}_body.html.j2", context, escape=True)
    return subject.strip(), text_body.strip(), html_body.strip()


def render_consultation_bill(context: Dict[str, Any]) -> Tuple[str, str, str]:
    """Render the bill email carrying the hosted checkout URL."""

    return _render_subject_body("consultation_bill", context)


def render_booking_manage_links(context: Dict[str, Any]) -> Tuple[str, str, str]:
    """Render the booking email carrying signed cancel and reschedule links."""

    return _render_subject_body("booking_manage_links", context)


__all__ = ["render_booking_manage_links", "render_consultation_bill"]
