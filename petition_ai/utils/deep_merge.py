"""Recursive merge for partial updates to nested records."""

import copy
from typing import Any, Dict, Mapping


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``target`` with ``source`` merged into it.

    Nested mappings merge key by key; lists and scalars in ``source``
    replace the value in ``target`` wholesale. Neither input is mutated.
    """
    result = copy.deepcopy(dict(target))
    for key, value in source.items():
        existing = result.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(existing, value)
        else:
            result[key] = copy.deepcopy(value)
    return result
