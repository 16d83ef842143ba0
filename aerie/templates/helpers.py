"""
Template helpers and built-in partials.

Helpers are installed as Jinja2 globals on every engine:

    {{ default_to(title, "Untitled") }}
    <input{{ html_attribute("disabled", is_disabled) }}>
    <div class="{{ class_list("card", active and "card--active") }}">
"""

from typing import Any, Dict

from jinja2 import Undefined
from markupsafe import Markup, escape


def default_to(value: Any, fallback: Any) -> Any:
    """``fallback`` when ``value`` is missing or empty."""
    if value is None or value == "" or value is False or isinstance(value, Undefined):
        return fallback
    return value


def html_attribute(name: str, value: Any) -> Markup:
    """
    Emit an HTML attribute with a leading space.

    ``True`` renders the bare name, falsy values render nothing, anything
    else renders ``name="value"`` with the value escaped.
    """
    if value is True:
        return Markup(" ") + escape(name)
    if not value:
        return Markup("")
    return Markup(' {}="{}"').format(name, value)


def class_list(*classes: Any) -> str:
    """Join the non-empty string arguments with single spaces."""
    return " ".join(c.strip() for c in classes if isinstance(c, str) and c.strip())


DEFAULT_HELPERS: Dict[str, Any] = {
    "default_to": default_to,
    "html_attribute": html_attribute,
    "class_list": class_list,
}


# ============================================================================
# Built-in partials
# ============================================================================

STYLES_PARTIAL = """\
{%- for href in external_css|default([]) %}
<link rel="stylesheet" href="{{ href }}" />
{%- endfor %}
{%- if assets is defined and assets and assets.css %}
{%- for href in assets.css %}
<link rel="stylesheet" href="{{ href }}" />
{%- endfor %}
{%- endif %}
{%- for style in inline_css|default([]) %}
<style>{{ style|safe }}</style>
{%- endfor %}
"""

SCRIPTS_PARTIAL = """\
{%- for src in external_js|default([]) %}
<script src="{{ src }}"></script>
{%- endfor %}
{%- if assets is defined and assets and assets.js %}
{%- for src in assets.js %}
<script src="{{ src }}"></script>
{%- endfor %}
{%- endif %}
{%- for script in inline_js|default([]) %}
<script>{{ script|safe }}</script>
{%- endfor %}
{%- if bootstrap is defined and bootstrap is not none %}
<script type="application/json" id="bootstrap">{{ bootstrap|tojson }}</script>
{%- endif %}
"""

BUILTIN_PARTIALS: Dict[str, str] = {
    "styles": STYLES_PARTIAL,
    "scripts": SCRIPTS_PARTIAL,
}
