"""Per-kind merge rules for applying one suggested change to a contact."""

import json

from shared_types import SuggestionAction

from .fields import FieldKind, FieldPath
from .models import Contact


def _item_key(item) -> str:
    if isinstance(item, str):
        return item
    return json.dumps(item, sort_keys=True, default=str)


def _as_items(value) -> list:
    if value is None:
        return []
    return list(value) if isinstance(value, (list, tuple)) else [value]


def merge_set(existing, action: SuggestionAction, value):
    """Ordered-set merge. Returns the new list, or None to drop the key.

    add: union, existing order kept, new items appended once.
    update: wholesale replacement.
    remove: drop listed items, or the whole field when no value is given.
    """
    current = _as_items(existing)

    if action == SuggestionAction.ADD:
        seen = {_item_key(x) for x in current}
        merged = list(current)
        for item in _as_items(value):
            key = _item_key(item)
            if key not in seen:
                seen.add(key)
                merged.append(item)
        return merged

    if action == SuggestionAction.UPDATE:
        replaced, seen = [], set()
        for item in _as_items(value):
            key = _item_key(item)
            if key not in seen:
                seen.add(key)
                replaced.append(item)
        return replaced

    if value is None or value == []:
        return None
    drop = {_item_key(x) for x in _as_items(value)}
    return [x for x in current if _item_key(x) not in drop]


def _container(ctx: dict, keys: tuple[str, ...]) -> dict:
    """Walk to the dict holding the last key, creating objects on the way."""
    current = ctx
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    return current


def apply_change(
    contact: Contact,
    path: FieldPath,
    kind: FieldKind,
    action: SuggestionAction,
    value,
) -> None:
    """Mutate `contact` in place for one selected suggestion."""
    action = SuggestionAction(action)

    if path.is_top_level:
        column = path.keys[0]
        if action == SuggestionAction.REMOVE:
            setattr(contact, column, None)
        else:
            # add on a scalar behaves like update
            setattr(contact, column, value)
        return

    ctx_name = path.root.value
    ctx = getattr(contact, ctx_name)
    if not isinstance(ctx, dict):
        ctx = {}
        setattr(contact, ctx_name, ctx)

    holder = _container(ctx, path.keys)
    leaf = path.keys[-1]

    if kind == FieldKind.SET:
        merged = merge_set(holder.get(leaf), action, value)
        if merged is None:
            holder.pop(leaf, None)
        else:
            holder[leaf] = merged
        return

    if action == SuggestionAction.REMOVE:
        holder.pop(leaf, None)
    else:
        holder[leaf] = value
