"""Jinja environment for the XML documents manualgen writes itself."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

_TEMPLATES_DIR = Path(__file__).with_name("templates")


def create_environment() -> Environment:
    """Return an environment over the packaged XML templates."""
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(enabled_extensions=("xml", "xml.j2")),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


_DEFAULT_ENV: Environment | None = None


def render_template(name: str, **context: Any) -> str:
    """Render a packaged template."""
    global _DEFAULT_ENV
    if _DEFAULT_ENV is None:
        _DEFAULT_ENV = create_environment()
    return _DEFAULT_ENV.get_template(name).render(**context)


__all__ = ["create_environment", "render_template"]
