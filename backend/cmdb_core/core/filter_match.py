"""Filter Matching: evaluates Mongo-style conditions, sort specs, projections and $set updates on dicts.

Invariants:
    - All functions are PURE: documents are never mutated
    - A missing field equals None (so {"f": None} matches documents without "f")
    - Equality against a list field matches when any element is equal
    - bool never equals int (True != 1), unlike plain Python comparison
    - Unknown "$" operators and malformed operands raise ValueError (never re.error or TypeError)
    - check_condition() validates a whole condition up front; matches() short-circuits

Supported operators: $eq $ne $in $nin $gt $gte $lt $lte $exists $regex/$options,
and the logical $or $and $nor at any level.
"""

import copy
import operator
import re
from typing import Any, Iterable

_MISSING = object()

_COMPARATORS = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}

_LOGICAL = ("$or", "$and", "$nor")


def matches(document: dict[str, Any], condition: dict[str, Any] | None) -> bool:
    """True when document satisfies every clause of condition."""
    if condition is not None and not isinstance(condition, dict):
        raise ValueError(f"condition must be an object, got {type(condition).__name__}")
    for key, expected in (condition or {}).items():
        if key == "$or":
            if not any(matches(document, c) for c in _clauses(expected, key)):
                return False
        elif key == "$and":
            if not all(matches(document, c) for c in _clauses(expected, key)):
                return False
        elif key == "$nor":
            if any(matches(document, c) for c in _clauses(expected, key)):
                return False
        elif key.startswith("$"):
            raise ValueError(f"unsupported top-level operator: {key}")
        elif not _match_field(lookup(document, key), expected):
            return False
    return True


def check_condition(condition: dict[str, Any] | None) -> None:
    """Raise ValueError when condition is malformed anywhere, whatever the documents it meets."""
    if condition is not None and not isinstance(condition, dict):
        raise ValueError(f"condition must be an object, got {type(condition).__name__}")
    for key, expected in (condition or {}).items():
        if key in _LOGICAL:
            for clause in _clauses(expected, key):
                check_condition(clause)
        elif key.startswith("$"):
            raise ValueError(f"unsupported top-level operator: {key}")
        elif _is_operator_dict(expected):
            for op, arg in expected.items():
                _check_operator(op, arg, expected)


def _check_operator(op: str, arg: Any, clause: dict[str, Any]) -> None:
    if op in ("$in", "$nin"):
        _as_list(arg, op)
    elif op == "$regex":
        _compile_regex(arg, clause.get("$options", ""))
    elif op == "$options":
        if not isinstance(arg, str):
            raise ValueError(f"$options expects a string, got {type(arg).__name__}")
    elif op not in ("$eq", "$ne", "$exists") and op not in _COMPARATORS:
        raise ValueError(f"unsupported operator: {op}")


def _clauses(expected: Any, op: str) -> list[dict[str, Any]]:
    if not isinstance(expected, list) or not all(isinstance(c, dict) for c in expected):
        raise ValueError(f"{op} expects an array of objects")
    return expected


def lookup(document: dict[str, Any], path: str) -> Any:
    """Resolve a dotted path; returns _MISSING when any segment is absent."""
    current: Any = document
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def _is_operator_dict(expected: Any) -> bool:
    return (
        isinstance(expected, dict) and bool(expected)
        and all(isinstance(k, str) and k.startswith("$") for k in expected)
    )


def _match_field(value: Any, expected: Any) -> bool:
    if _is_operator_dict(expected):
        return all(
            _apply(op, value, arg, expected) for op, arg in expected.items()
        )
    return _equals(value, expected)


def _same(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    return a == b


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    if _same(value, expected):
        return True
    if isinstance(value, list) and not isinstance(expected, list):
        return any(_same(item, expected) for item in value)
    return False


def _apply(op: str, value: Any, arg: Any, clause: dict[str, Any]) -> bool:
    if op == "$eq":
        return _equals(value, arg)
    if op == "$ne":
        return not _equals(value, arg)
    if op == "$in":
        return any(_equals(value, candidate) for candidate in _as_list(arg, op))
    if op == "$nin":
        return not any(_equals(value, candidate) for candidate in _as_list(arg, op))
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    if op == "$regex":
        pattern = _compile_regex(arg, clause.get("$options", ""))
        return isinstance(value, str) and pattern.search(value) is not None
    if op == "$options":
        if not isinstance(arg, str):
            raise ValueError(f"$options expects a string, got {type(arg).__name__}")
        return True
    if op in _COMPARATORS:
        return _compare(_COMPARATORS[op], value, arg)
    raise ValueError(f"unsupported operator: {op}")


def _compile_regex(pattern: Any, options: Any) -> re.Pattern:
    if not isinstance(pattern, str):
        raise ValueError(f"$regex expects a string, got {type(pattern).__name__}")
    if not isinstance(options, str):
        raise ValueError(f"$options expects a string, got {type(options).__name__}")
    flags = re.IGNORECASE if "i" in options else 0
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise ValueError(f"invalid $regex {pattern!r}: {e}") from None


def _as_list(arg: Any, op: str) -> list:
    if not isinstance(arg, (list, tuple, set)):
        raise ValueError(f"{op} expects an array, got {type(arg).__name__}")
    return list(arg)


def _compare(cmp, value: Any, arg: Any) -> bool:
    if value is _MISSING or value is None or isinstance(value, bool):
        return False
    try:
        return bool(cmp(value, arg))
    except TypeError:
        return False


# ─── Sort & Projection ───────────────────────────────────────────

def parse_sort(sort: str | None) -> list[tuple[str, bool]]:
    """Parse "bk_host_id,-create_time" into [("bk_host_id", False), ("create_time", True)]."""
    keys = []
    for raw in (sort or "").split(","):
        raw = raw.strip()
        if not raw:
            continue
        if raw.startswith("-"):
            keys.append((raw[1:], True))
        else:
            keys.append((raw.lstrip("+"), False))
    return keys


def _sort_token(value: Any) -> tuple:
    # missing/None first, then numbers, then strings, then everything else
    if value is _MISSING or value is None:
        return (0, 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, repr(value))


def sort_documents(documents: Iterable[dict[str, Any]], sort: str | None) -> list[dict[str, Any]]:
    ordered = list(documents)
    # stable sort applied from the least significant key
    for field, descending in reversed(parse_sort(sort)):
        ordered.sort(key=lambda d: _sort_token(lookup(d, field)), reverse=descending)
    return ordered


def project(document: dict[str, Any], fields: Iterable[str] | None) -> dict[str, Any]:
    """Keep only the listed top-level fields; no fields means the whole document."""
    wanted = [f for f in (fields or []) if f]
    if not wanted:
        return dict(document)
    return {f: document[f] for f in wanted if f in document}


def apply_set(document: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of document with $set semantics applied (dotted keys create sub-documents)."""
    updated = copy.deepcopy(document)
    for path, value in data.items():
        target = updated
        *parents, leaf = path.split(".")
        for part in parents:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[leaf] = copy.deepcopy(value)
    return updated
