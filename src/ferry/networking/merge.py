"""Recursive merging of request configuration trees."""

from __future__ import annotations

from typing import Any, Mapping

_SEQUENCE_TYPES = (list, tuple)


def _is_mergeable(existing: Any, incoming: Any) -> bool:
    if isinstance(incoming, Mapping):
        return isinstance(existing, Mapping)
    if isinstance(incoming, _SEQUENCE_TYPES):
        return isinstance(existing, _SEQUENCE_TYPES)
    return False


def deep_merge(base: Any, overrides: Any, fold_case: bool = False) -> Any:
    """Merge ``overrides`` into a copy of ``base``.

    Sequences are concatenated. Mappings are merged key by key: a nested
    mapping (or sequence) meeting an existing mapping (or sequence) under
    the same key is merged recursively, anything else replaces the prior
    value. With ``fold_case`` every key is lower-cased, so keys differing
    only in case collapse and the last writer wins. The ``headers`` key
    always merges its children case-insensitively.

    Args:
        base: Starting tree. Never mutated, and nested mappings are copied.
        overrides: Tree whose values take precedence.
        fold_case: Lower-case keys at this level.

    Returns:
        A new tree.
    """
    if isinstance(base, _SEQUENCE_TYPES):
        if isinstance(overrides, _SEQUENCE_TYPES):
            return [*base, *overrides]
        if overrides is None:
            return list(base)
        return [*base, overrides]

    merged: dict[str, Any] = {}
    for key, value in (base or {}).items():
        if isinstance(value, Mapping):
            value = deep_merge(value, {})
        merged[key.lower() if fold_case else key] = value

    for key, value in (overrides or {}).items():
        name = key.lower() if fold_case else key
        if name in merged and _is_mergeable(merged[name], value):
            merged[name] = deep_merge(
                merged[name], value, True if name == "headers" else fold_case
            )
        else:
            merged[name] = value
    return merged


def merge_config(
    first: Mapping[str, Any] | None, second: Mapping[str, Any] | None
) -> dict[str, Any]:
    """Return a new configuration with ``second`` layered over ``first``."""
    return deep_merge(first or {}, second or {}, False)
