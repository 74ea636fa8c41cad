"""Declarative record matching.

A query maps a field name to one comparison directive:

    {"tags": {"includes": "coastal"}, "isActive": {"equals": True}}

Supported directives, checked in this order when several are given:
    equals    field value loosely equals the operand
    includes  field value is a list containing the operand
    in        operand is a list containing the field value

Every field must be present and non-null on the record, and every directive
must succeed, for the record to match.
"""

import math
import re
from collections.abc import Callable, Mapping
from typing import Any

Predicate = Callable[[dict], bool]

# Plain decimal literals only; float() would also take "1_0", "nan" and "inf".
_DECIMAL = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")

DIRECTIVE_ALIASES = {
    "equals": ("equals", "$equals"),
    "includes": ("includes", "$includes"),
    "in": ("in", "$in", "memberOf"),
}


def loosely_equal(left: Any, right: Any) -> bool:
    """Compare two scalars, coercing between booleans, numbers and strings.

    Booleans compare as 0/1 and numeric strings as their numeric value, so
    `1 == "1"` and `True == 1` hold while `True == "true"` does not.
    """
    if left is None or right is None:
        return False
    if type(left) is type(right):
        return left == right
    left_num = _as_number(left)
    right_num = _as_number(right)
    if left_num is None or right_num is None:
        return left == right
    return left_num == right_num


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0.0
        if not _DECIMAL.fullmatch(stripped):
            return math.nan
        return float(stripped)
    return None


def _pick_directive(directive: Mapping[str, Any]) -> tuple[str, Any] | None:
    for name, keys in DIRECTIVE_ALIASES.items():
        for key in keys:
            if directive.get(key) is not None:
                return name, directive[key]
    return None


def _compile_field(field: str, directive: Mapping[str, Any]) -> Predicate:
    picked = _pick_directive(directive or {})

    if picked is None:
        return lambda record: record.get(field) is not None

    name, operand = picked
    if name == "equals":
        def check(record: dict) -> bool:
            value = record.get(field)
            return value is not None and loosely_equal(value, operand)
    elif name == "includes":
        def check(record: dict) -> bool:
            value = record.get(field)
            return isinstance(value, list) and operand in value
    else:
        def check(record: dict) -> bool:
            value = record.get(field)
            return value is not None and isinstance(operand, list) and value in operand
    return check


def where(query: Mapping[str, Mapping[str, Any]] | None) -> Predicate:
    """Compile a field query into a record predicate.

    Args:
        query: Mapping of field name to directive mapping.

    Returns:
        A function returning True for records matching every field.
    """
    checks = [_compile_field(field, directive) for field, directive in (query or {}).items()]

    def predicate(record: dict) -> bool:
        return all(check(record) for check in checks)

    return predicate
