"""Jinja2 templating for action titles and bodies.

Template spec accepted by render_template:
- None or empty -> returns None
- string starting with "file:<name>" -> loads apps/actions/templates/<name>
- dict: {"type": "inline"|"file", "template": "..."}
- string (default) -> treated as inline template

Each action kind has default ``<kind>_title.j2`` and ``<kind>_body.j2``
templates; a channel config may override them with ``title_template`` /
``body_template``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import jinja2

TEMPLATES_DIR = Path(__file__).parent / "templates"

logger = logging.getLogger(__name__)

_JINJA_ENV = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=False,
)


def render_template(spec: Any, context: dict[str, Any]) -> str | None:
    """Render a template spec with the provided context.

    Raises:
        ValueError: unsupported spec, missing template file or render error.
    """
    if not spec:
        return None

    template_name: str | None = None
    template_str: str | None = None
    if isinstance(spec, dict):
        if spec.get("type", "inline") == "file":
            template_name = spec.get("template")
        else:
            template_str = spec.get("template")
    elif isinstance(spec, str):
        if spec.startswith("file:"):
            template_name = spec.split(":", 1)[1]
        else:
            template_str = spec
    else:
        raise ValueError("Unsupported template spec")

    try:
        if template_name:
            logger.debug("render_template: loading template file: %s", template_name)
            template = _JINJA_ENV.get_template(template_name)
        elif template_str is not None:
            template = _JINJA_ENV.from_string(template_str)
        else:
            return None
        return template.render(**(context or {})).strip()
    except jinja2.TemplateNotFound as e:
        raise ValueError(f"Template file not found: {e.name}") from e
    except jinja2.TemplateError as e:
        raise ValueError(f"Jinja2 render error: {e}") from e


def render_action(
    action_kind: str, context: dict[str, Any], config: dict[str, Any] | None = None
) -> tuple[str, str]:
    """Return ``(title, body)`` for an action kind."""
    config = config or {}
    title = render_template(
        config.get("title_template") or f"file:{action_kind}_title.j2", context
    )
    body = render_template(config.get("body_template") or f"file:{action_kind}_body.j2", context)
    return title or "", body or ""
