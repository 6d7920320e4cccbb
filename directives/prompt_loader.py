"""Load and render the Jinja2 directive templates shipped in ``templates/``."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

_TEMPLATES_DIR = Path(__file__).parent / "templates"
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)


def render(template_name: str, **kwargs) -> str:
    """Render a directive template; missing variables raise instead of rendering blank."""
    tpl = _env.get_template(template_name)
    return tpl.render(**kwargs).strip()


def has_template(template_name: str) -> bool:
    return (_TEMPLATES_DIR / template_name).is_file()
