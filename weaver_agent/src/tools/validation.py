# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Validation of tool input against the JSON schema a tool was registered with.

Each schema is compiled once into a pydantic model. Only the top level of the
schema is enforced: declared property types, enums, and required keys. Nested
objects are checked for their container type only, and undeclared keys are
allowed through, since schemas imported from foreign providers are often
looser than the tools behind them.
"""

from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

_JSON_TYPES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": int | float,  # JSON does not distinguish 1 from 1.0
    "boolean": bool,
    "array": list,
    "object": dict,
    "null": type(None),
}


class _ToolInput(BaseModel):
    model_config = ConfigDict(extra="allow", strict=True)


def _annotation_for(prop: dict[str, Any]) -> Any:
    enum = prop.get("enum")
    if enum and all(v is None or isinstance(v, (str, int, float, bool)) for v in enum):
        return Literal[tuple(enum)]

    json_type = prop.get("type")
    if isinstance(json_type, list):
        members = [_JSON_TYPES[t] for t in json_type if isinstance(t, str) and t in _JSON_TYPES]
        if not members:
            return Any
        annotation = members[0]
        for member in members[1:]:
            annotation = annotation | member
        return annotation
    if isinstance(json_type, str):
        return _JSON_TYPES.get(json_type, Any)
    return Any


def compile_schema(name: str, schema: dict[str, Any] | None) -> type[BaseModel]:
    """Build a pydantic model that validates input for the named tool."""
    schema = schema or {}
    properties: dict[str, Any] = schema.get("properties") or {}
    required = {r for r in schema.get("required") or [] if isinstance(r, str)}

    # Property names are arbitrary strings, so fields are positional and
    # bound to the real key through an alias.
    fields: dict[str, Any] = {}
    for i, (prop_name, prop) in enumerate(properties.items()):
        annotation = _annotation_for(prop if isinstance(prop, dict) else {})
        if prop_name in required:
            fields[f"p{i}"] = (annotation, Field(..., alias=prop_name))
        else:
            fields[f"p{i}"] = (Optional[annotation], Field(None, alias=prop_name))

    # Required keys that the schema never describes still have to be present
    for j, prop_name in enumerate(sorted(required - set(properties))):
        fields[f"r{j}"] = (Any, Field(..., alias=prop_name))

    model_name = "".join(part.capitalize() for part in name.replace("-", "_").split("_")) or "Tool"
    return create_model(f"{model_name}Input", __base__=_ToolInput, **fields)


def validation_errors(model: type[BaseModel], data: Any) -> list[str]:
    """Return a list of human readable problems, empty when ``data`` is valid."""
    if not isinstance(data, dict):
        return [f"expected an object, got {type(data).__name__}"]
    try:
        model.model_validate(data)
    except ValidationError as e:
        return [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
    return []
