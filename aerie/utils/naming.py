"""
Naming helpers.

Handler file stems come in two styles, ``ExpressApi`` and
``express_api``; these helpers translate between them.
"""

import re

_SEPARATORS = re.compile(r"[_\-]+")


def _lower_first(value: str) -> str:
    return value[:1].lower() + value[1:]


def pascal_case(value: str) -> str:
    """``second_express`` -> ``SecondExpress``; CamelCase input keeps its casing."""
    return "".join(p[:1].upper() + p[1:] for p in _SEPARATORS.split(value) if p)


def camel_case(value: str) -> str:
    """
    ``second_express`` -> ``secondExpress``, ``SecondExpress`` -> ``secondExpress``.
    """
    if "_" in value or "-" in value:
        parts = [p for p in _SEPARATORS.split(value) if p]
        if not parts:
            return ""
        return parts[0].lower() + pascal_case("_".join(parts[1:]))
    return _lower_first(value)
