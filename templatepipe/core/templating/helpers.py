# templatepipe/core/templating/helpers.py
"""
Helpers registered on every HandlebarsEngine. pybars passes the current
context as the first argument; none of these look at it.
"""
import datetime
from numbers import Number
from typing import Any, Callable, Dict, Iterable


def _as_number(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, Number):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            try:
                return float(value)
            except ValueError:
                return None
    return None


def add_helper(_this: Any, *values: Any):
    """{{add a b ...}}: sum of the numeric arguments; anything else is skipped."""
    numbers = [n for n in (_as_number(v) for v in values) if n is not None]
    return sum(numbers)


def now_helper(_this: Any, fmt: str = "") -> str:
    """{{now}} is the UTC time in ISO 8601; {{now "%Y"}} formats it with strftime."""
    current = datetime.datetime.now(datetime.timezone.utc)
    return current.strftime(fmt) if fmt else current.isoformat()


def default_helper(_this: Any, value: Any, fallback: Any = "") -> Any:
    return fallback if value is None or value == "" else value


def join_helper(_this: Any, items: Iterable[Any], separator: str = ", ") -> str:
    if items is None:
        return ""
    if isinstance(items, str):
        return items
    return separator.join(str(item) for item in items)


BUILTIN_HELPERS: Dict[str, Callable[..., Any]] = {
    "add": add_helper,
    "now": now_helper,
    "default": default_helper,
    "join": join_helper,
}
