"""Rich JSON Schema -> oracle-safe JSON Schema.

Structured-output modes accept only a subset of JSON Schema. ``transform``
rewrites a schema tree (as produced by pydantic's ``model_json_schema``) into
that subset:

    object          closed (additionalProperties: false), every property required
    array           items transformed, length/uniqueness constraints dropped
    string/number   range, pattern and format constraints dropped
    boolean         unchanged
    nullable        inner transformed, re-wrapped as anyOf [inner, null]
    optional        becomes required; ``default`` dropped
    enum / const    plain string, or anyOf [string, null] when null is allowed
    union           first declared alternative
    $ref            inlined from the root $defs

Enum vocabularies are named in the prompt text instead. Node kinds not listed
above pass through unchanged.
"""

import copy
import logging
from typing import Any

logger = logging.getLogger(__name__)

METADATA_KEYS = ("title", "description", "examples", "example")

_SCALAR_TYPES = {"string", "number", "integer"}
_NULL = {"type": "null"}

_schema_cache: dict[str, Any] | None = None


def _metadata(node: dict) -> dict:
    return {k: node[k] for k in METADATA_KEYS if k in node}


def _is_null(node: Any) -> bool:
    return isinstance(node, dict) and node.get("type") == "null"


def _resolve_ref(ref: str, defs: dict) -> dict | None:
    prefix = "#/$defs/"
    if not ref.startswith(prefix):
        return None
    return defs.get(ref[len(prefix):])


def _transform(node: Any, defs: dict, seen: tuple[str, ...]) -> Any:
    if not isinstance(node, dict):
        return node

    # $ref: inline the definition, keeping metadata from the referring node
    if "$ref" in node:
        ref = node["$ref"]
        target = _resolve_ref(ref, defs)
        if target is None or ref in seen:
            return node
        resolved = _transform(target, defs, seen + (ref,))
        if isinstance(resolved, dict):
            return {**resolved, **_metadata(node)}
        return resolved

    # Nullable / union
    for key in ("anyOf", "oneOf"):
        if key in node and isinstance(node[key], list) and node[key]:
            alternatives = node[key]
            non_null = [alt for alt in alternatives if not _is_null(alt)]
            if not non_null:
                return {**_NULL, **_metadata(node)}
            inner = _transform(non_null[0], defs, seen)
            if len(non_null) < len(alternatives):
                if _is_null(inner):
                    return {**_NULL, **_metadata(node)}
                if isinstance(inner, dict) and "anyOf" in inner:
                    return {**inner, **_metadata(node)}
                return {"anyOf": [inner, dict(_NULL)], **_metadata(node)}
            # Plain union: first declared alternative wins
            if isinstance(inner, dict):
                return {**inner, **_metadata(node)}
            return inner

    # Enum / Literal
    if "enum" in node or "const" in node:
        values = list(node["enum"]) if isinstance(node.get("enum"), list) else []
        if "const" in node:
            values.append(node["const"])
        node_type = node.get("type")
        nullable = None in values or (isinstance(node_type, list) and "null" in node_type)
        if nullable and values and all(v is None for v in values):
            return {**_NULL, **_metadata(node)}
        if nullable:
            return {"anyOf": [{"type": "string"}, dict(_NULL)], **_metadata(node)}
        return {"type": "string", **_metadata(node)}

    node_type = node.get("type")

    # type: ["string", "null"] style nullability
    if isinstance(node_type, list):
        non_null_types = [t for t in node_type if t != "null"]
        if not non_null_types:
            return {**_NULL, **_metadata(node)}
        inner = _transform({**node, "type": non_null_types[0]}, defs, seen)
        if "null" in node_type:
            return {"anyOf": [inner, dict(_NULL)], **_metadata(node)}
        return inner

    if node_type == "object":
        properties = {
            name: _transform(prop, defs, seen)
            for name, prop in (node.get("properties") or {}).items()
        }
        return {
            "type": "object",
            **_metadata(node),
            "properties": properties,
            "required": list(properties),
            "additionalProperties": False,
        }

    if node_type == "array":
        result = {"type": "array", **_metadata(node)}
        if "items" in node:
            result["items"] = _transform(node["items"], defs, seen)
        return result

    if node_type in _SCALAR_TYPES:
        return {"type": node_type, **_metadata(node)}

    if node_type == "boolean":
        return {k: v for k, v in node.items() if k != "default"}

    return node


def transform(schema: dict) -> dict:
    """Return the oracle-safe equivalent of ``schema``. Pure and idempotent."""
    defs = schema.get("$defs", {}) if isinstance(schema, dict) else {}
    result = _transform(copy.deepcopy(schema), defs, ())
    if isinstance(result, dict):
        result.pop("$defs", None)
    return result


def get_oracle_schema() -> dict:
    """Oracle-safe schema of ParsedResume, built once per process."""
    global _schema_cache
    if _schema_cache is None:
        from models.schemas.resume_parsed import ParsedResume

        _schema_cache = transform(ParsedResume.model_json_schema(by_alias=True))
        logger.info("Built oracle-safe schema (%d top-level fields)",
                    len(_schema_cache.get("properties", {})))
    return copy.deepcopy(_schema_cache)
