from typing import Any, Iterable, Mapping, Optional

_MISSING = object()


def resolve_path(value: Any, path: str) -> Any:
    """Walks a dotted key path through nested mappings.

    Returns ``None`` when any segment is absent, null, or not a mapping.
    """
    current = value
    for segment in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment, _MISSING)
        if current is _MISSING or current is None:
            return None
    return current


def scalar_or_none(value: Any) -> Any:
    """Drops containers: a mapping or list is never a field value."""
    if isinstance(value, (Mapping, list, tuple, set)):
        return None
    return value


def first_present(value: Any, paths: Iterable[str]) -> Optional[Any]:
    """Returns the leaf of the first path that resolves to a non-null scalar.

    A path ending on a mapping or list is skipped, so ``homeTeam`` only
    matches when upstream sent the team as a plain string.
    """
    for path in paths:
        found = scalar_or_none(resolve_path(value, path))
        if found is not None:
            return found
    return None


def extract_fields(value: Any, table: Mapping[str, Iterable[str]]) -> dict:
    """Applies a field -> candidate paths table to one upstream item."""
    return {field: first_present(value, paths) for field, paths in table.items()}
