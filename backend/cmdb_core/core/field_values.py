"""Field Values: typed accessors over schema-less instance payloads.

Invariants:
    - to_int accepts int, integral float and numeric str; rejects bool and anything else (ValueError)
    - first_ip never raises: every input shape maps to a str ("" when nothing usable)
"""

from typing import Any


def to_int(value: Any) -> int:
    """Coerce a stored identity value to int."""
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValueError(f"not an integer: {value!r}") from None
    raise ValueError(f"not an integer: {value!r}")


def to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def first_ip(value: Any, delimiter: str = ",") -> str:
    """First address of a host ip field.

    "10.0.0.1,10.0.0.2" -> "10.0.0.1"; ["10.0.0.5"] -> "10.0.0.5"; [] -> "".
    """
    if isinstance(value, str):
        head, _, _ = value.partition(delimiter)
        return head
    if isinstance(value, (list, tuple)):
        if not value:
            return ""
        return to_str(value[0])
    return to_str(value)
