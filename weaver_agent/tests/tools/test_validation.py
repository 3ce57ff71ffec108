# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from src.tools.validation import compile_schema, validation_errors


class TestCompileSchema:
    def test_empty_schema_accepts_anything_object(self):
        model = compile_schema("empty", None)
        assert validation_errors(model, {}) == []
        assert validation_errors(model, {"anything": [1, 2]}) == []
        assert validation_errors(model, "nope") != []

    def test_number_accepts_int_and_float(self):
        model = compile_schema(
            "num", {"type": "object", "properties": {"n": {"type": "number"}}, "required": ["n"]}
        )
        assert validation_errors(model, {"n": 1}) == []
        assert validation_errors(model, {"n": 1.5}) == []
        assert validation_errors(model, {"n": "1"}) != []

    def test_no_coercion(self):
        model = compile_schema(
            "strict",
            {"type": "object", "properties": {"flag": {"type": "boolean"}, "i": {"type": "integer"}}},
        )
        assert validation_errors(model, {"flag": "true"}) != []
        assert validation_errors(model, {"i": "3"}) != []
        assert validation_errors(model, {"flag": False, "i": 3}) == []

    def test_type_list(self):
        model = compile_schema(
            "multi", {"type": "object", "properties": {"v": {"type": ["string", "null"]}}}
        )
        assert validation_errors(model, {"v": None}) == []
        assert validation_errors(model, {"v": "x"}) == []
        assert validation_errors(model, {"v": 3}) != []

    def test_awkward_property_names(self):
        # Names that clash with pydantic internals or are not identifiers
        schema = {
            "type": "object",
            "properties": {
                "model_config": {"type": "string"},
                "my-key": {"type": "integer"},
                "schema": {"type": "string"},
            },
            "required": ["my-key", "undeclared"],
        }
        model = compile_schema("awkward-name", schema)

        assert validation_errors(model, {"my-key": 1, "undeclared": None, "schema": "s"}) == []
        errors = validation_errors(model, {"model_config": "x"})
        assert any("my-key" in e for e in errors)
        assert any("undeclared" in e for e in errors)

    def test_ignores_malformed_parts(self):
        schema = {
            "type": "object",
            "properties": {"a": {"type": {"weird": True}}, "b": "not a dict"},
            "required": [["nested"], "a"],
        }
        model = compile_schema("malformed", schema)
        assert validation_errors(model, {"a": 1}) == []
