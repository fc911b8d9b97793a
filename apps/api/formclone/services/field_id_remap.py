"""
Field ID remapping for cloned forms.

When a form is cloned the host assigns new field IDs, so every reference
to a field inside the clone's dependents (conditional logic, routing rules,
merge tags, add-on feed meta) has to be rewritten through an old -> new
ID map. IDs are compared as strings: ``"3"`` for a field and ``"3.2"``
for one of its sub-inputs.

Unresolvable references are left unchanged.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Union

logger = logging.getLogger(__name__)

JSONScalar = Union[str, int, float, bool, None]
JSONValue = Union[JSONScalar, dict[str, Any], list[Any]]
FieldIdMap = dict[str, str]

# {Label:3}, {Label:3.2}, {Label:3:currency}
MERGE_TAG_PATTERN = re.compile(r"\{([^:{}]+):([0-9.]+)(:[^{}]*?)?\}")

# Logic blobs that reference fields only through ``fieldId`` keys
CONDITIONAL_LOGIC_KEYS = (
    "feed_condition_conditional_logic_object",
    "feed_condition_conditional_logic",
    "conditionalLogic",
)


def _scalar_key(value: Any) -> str | None:
    """String form of a scalar that may be a field ID, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return None


def _remap_id(key: str, id_map: Mapping[str, str]) -> str | None:
    """Resolve ``key`` directly, or through its base when it is ``base.suffix``."""
    if key in id_map:
        return id_map[key]
    base, dot, suffix = key.partition(".")
    if dot and base in id_map:
        return f"{id_map[base]}.{suffix}"
    return None


def remap_all_field_ids(data: JSONValue, id_map: Mapping[str, str]) -> JSONValue:
    """
    Rewrite every scalar in ``data`` that names a mapped field.

    Returns a new structure of the same shape; keys and element order are
    preserved and the input is not modified. A scalar matching a map key
    is replaced by the mapped ID; ``"<base>.<suffix>"`` with a mapped base
    becomes ``"<new base>.<suffix>"``. Dict keys are never rewritten.
    """
    if isinstance(data, dict):
        return {k: remap_all_field_ids(v, id_map) for k, v in data.items()}
    if isinstance(data, list):
        return [remap_all_field_ids(v, id_map) for v in data]

    key = _scalar_key(data)
    if key is None:
        return data
    remapped = _remap_id(key, id_map)
    return data if remapped is None else remapped


def remap_field_id_keys(data: JSONValue, id_map: Mapping[str, str]) -> JSONValue:
    """
    Rewrite only values stored under a ``fieldId`` key.

    Narrower than :func:`remap_all_field_ids`: numeric values elsewhere in
    the tree (amounts, page numbers, ...) are left alone. Lookup is exact,
    no ``base.suffix`` fallback.
    """
    if isinstance(data, dict):
        result = {}
        for k, v in data.items():
            key = _scalar_key(v) if k == "fieldId" else None
            if key is not None and key in id_map:
                result[k] = id_map[key]
            else:
                result[k] = remap_field_id_keys(v, id_map)
        return result
    if isinstance(data, list):
        return [remap_field_id_keys(v, id_map) for v in data]
    return data


def remap_conditional_field_ids(
    meta: dict[str, Any], id_map: Mapping[str, str]
) -> dict[str, Any]:
    """Apply :func:`remap_field_id_keys` to the known conditional logic keys."""
    result = dict(meta)
    for logic_key in CONDITIONAL_LOGIC_KEYS:
        if result.get(logic_key) is not None:
            result[logic_key] = remap_field_id_keys(result[logic_key], id_map)
    return result


def remap_merge_tags(text: Any, id_map: Mapping[str, str]) -> Any:
    """
    Rewrite the ID inside ``{label:id}`` / ``{label:id:modifier}`` merge tags.

    Label and modifier are kept verbatim. Tags whose ID cannot be resolved
    are returned byte-for-byte. Non-string input is returned unchanged.
    """
    if not isinstance(text, str) or not text:
        return text

    def _replace(match: re.Match) -> str:
        label, field_id, modifier = match.group(1), match.group(2), match.group(3) or ""
        new_id = _remap_id(field_id, id_map)
        if new_id is None:
            return match.group(0)
        replacement = f"{{{label}:{new_id}{modifier}}}"
        logger.debug("Replacing merge tag %s with %s", match.group(0), replacement)
        return replacement

    result = MERGE_TAG_PATTERN.sub(_replace, text)
    if result != text:
        logger.debug("remap_merge_tags input=%r output=%r", text, result)
    return result


def normalize_input_ids(fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Make every sub-input ID follow ``{field_id}.{suffix}``.

    The suffix is whatever followed the first dot of the input's old ID;
    an input with no suffix gets the bare field ID. Inputs without an
    ``id`` are left as they are.
    """
    normalized = []
    for field in fields:
        field = dict(field)
        inputs = field.get("inputs")
        if isinstance(inputs, list) and inputs:
            field_id = field.get("id")
            new_inputs = []
            for input_ in inputs:
                if isinstance(input_, dict) and input_.get("id") is not None:
                    input_ = dict(input_)
                    _, _, suffix = str(input_["id"]).partition(".")
                    input_["id"] = f"{field_id}.{suffix}" if suffix else f"{field_id}"
                new_inputs.append(input_)
            field["inputs"] = new_inputs
        normalized.append(field)
    return normalized


def build_field_map(
    old_fields: list[dict[str, Any]],
    new_fields: list[dict[str, Any]],
    inputs_by: str = "label",
) -> FieldIdMap:
    """
    Pair source fields with cloned fields by position.

    A pair is mapped only when label and type are equal; mismatched
    positions are skipped, leaving references to them unmapped.

    Sub-inputs of a mapped pair are matched by label (``inputs_by="label"``),
    a later match overwriting an earlier one, or index for index
    (``inputs_by="position"``), which holds up when input labels repeat
    or are missing.
    """
    if inputs_by not in ("label", "position"):
        raise ValueError(f"Unknown sub-input matching mode: {inputs_by!r}")

    field_map: FieldIdMap = {}
    for i, field in enumerate(old_fields):
        if i >= len(new_fields):
            break
        new_field = new_fields[i]
        if field.get("label") != new_field.get("label") or field.get("type") != new_field.get("type"):
            continue

        field_map[str(field.get("id"))] = str(new_field.get("id"))

        old_inputs = field.get("inputs") or []
        new_inputs = new_field.get("inputs") or []
        if inputs_by == "position":
            for old_input, new_input in zip(old_inputs, new_inputs):
                field_map[str(old_input.get("id"))] = str(new_input.get("id"))
            continue
        for old_input in old_inputs:
            for new_input in new_inputs:
                if old_input.get("label") == new_input.get("label"):
                    field_map[str(old_input.get("id"))] = str(new_input.get("id"))
    return field_map


def update_fields_conditional_logic(
    fields: list[dict[str, Any]], id_map: Mapping[str, str]
) -> list[dict[str, Any]]:
    """Rewrite ``fieldId`` references in each field's conditional logic."""
    updated = []
    for field in fields:
        field = remap_conditional_field_ids(field, id_map)
        next_button = field.get("nextButton")
        if isinstance(next_button, dict):
            field["nextButton"] = remap_conditional_field_ids(next_button, id_map)
        updated.append(field)
    return updated
