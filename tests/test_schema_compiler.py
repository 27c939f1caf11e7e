"""Tests for input schema compilation and argument validation."""

import random
import string

import pytest

from toolbridge.infra.errors import ValidationError
from toolbridge.models.tool import InputSchema
from toolbridge.services.schema_compiler import compile_schema


def _schema(properties, required=None):
    return InputSchema.from_raw({"type": "object", "properties": properties, "required": required or []})


class TestClosedSchemas:
    """All declared properties required: unknown keys are dropped."""

    @pytest.fixture
    def validator(self):
        return compile_schema(_schema(
            {"query": {"type": "string"}, "limit": {"type": "number"}},
            required=["query", "limit"],
        ))

    def test_accepts_valid_arguments(self, validator):
        assert validator.closed is True
        assert validator.validate({"query": "cats", "limit": 5}) == {"query": "cats", "limit": 5}

    def test_numbers_normalized_to_float(self, validator):
        args = validator.validate({"query": "cats", "limit": 5})
        assert isinstance(args["limit"], float)

    def test_drops_unknown_keys(self, validator):
        args = validator.validate({"query": "cats", "limit": 2.5, "extra": "x"})
        assert args == {"query": "cats", "limit": 2.5}

    def test_missing_required_field(self, validator):
        with pytest.raises(ValidationError) as exc_info:
            validator.validate({"query": "cats"})
        assert exc_info.value.fields == ["limit"]
        assert exc_info.value.issues[0].expected == "number"

    def test_wrong_type_names_field_and_expected_type(self, validator):
        with pytest.raises(ValidationError) as exc_info:
            validator.validate({"query": 42, "limit": 1})
        assert exc_info.value.fields == ["query"]
        assert exc_info.value.issues[0].expected == "string"
        assert "query" in str(exc_info.value)

    def test_reports_every_offending_field(self, validator):
        with pytest.raises(ValidationError) as exc_info:
            validator.validate({"query": 1, "limit": "ten"})
        assert sorted(exc_info.value.fields) == ["limit", "query"]

    def test_numeric_strings_are_not_coerced(self, validator):
        with pytest.raises(ValidationError):
            validator.validate({"query": "cats", "limit": "5"})


class TestOpenSchemas:
    """Some or no properties required: unknown keys pass through."""

    def test_optional_property_and_passthrough(self):
        validator = compile_schema(_schema(
            {"query": {"type": "string"}, "safe": {"type": "boolean"}},
            required=["query"],
        ))
        assert validator.closed is False
        args = validator.validate({"query": "cats", "region": "eu"})
        assert args == {"query": "cats", "region": "eu"}

    def test_omitted_optional_property_is_not_filled_in(self):
        validator = compile_schema(_schema({"safe": {"type": "boolean"}}))
        assert validator.validate({}) == {}

    def test_optional_property_still_type_checked(self):
        validator = compile_schema(_schema({"safe": {"type": "boolean"}}))
        with pytest.raises(ValidationError) as exc_info:
            validator.validate({"safe": "yes"})
        assert exc_info.value.fields == ["safe"]
        assert exc_info.value.issues[0].expected == "boolean"

    def test_no_properties_accepts_anything(self):
        validator = compile_schema(_schema({}))
        assert validator.fields == []
        assert validator.validate({"anything": [1, 2]}) == {"anything": [1, 2]}

    def test_unknown_declared_type_accepts_any_value(self):
        validator = compile_schema(_schema({"filters": {"type": "object"}}, required=["filters"]))
        assert validator.expected_type("filters") == "object"
        assert validator.validate({"filters": {"a": 1}}) == {"filters": {"a": 1}}


class TestArgumentBagShape:

    def test_none_counts_as_empty(self):
        validator = compile_schema(_schema({"q": {"type": "string"}}))
        assert validator.validate(None) == {}

    def test_none_rejected_when_fields_required(self):
        validator = compile_schema(_schema({"q": {"type": "string"}}, required=["q"]))
        with pytest.raises(ValidationError) as exc_info:
            validator.validate(None)
        assert exc_info.value.fields == ["q"]

    def test_non_mapping_rejected(self):
        validator = compile_schema(_schema({"q": {"type": "string"}}))
        with pytest.raises(ValidationError) as exc_info:
            validator.validate(["q"])
        assert exc_info.value.fields == ["$"]

    def test_property_names_that_are_not_identifiers(self):
        validator = compile_schema(_schema(
            {"max-results": {"type": "number"}, "class": {"type": "string"}},
            required=["max-results", "class"],
        ))
        assert validator.validate({"max-results": 3, "class": "a"}) == {"max-results": 3, "class": "a"}

    def test_required_name_without_declaration(self):
        validator = compile_schema(_schema({"q": {"type": "string"}}, required=["q", "token"]))
        with pytest.raises(ValidationError) as exc_info:
            validator.validate({"q": "x"})
        assert exc_info.value.fields == ["token"]

    def test_compile_accepts_raw_dict(self):
        validator = compile_schema({"type": "object", "properties": {"q": {"type": "string"}}, "required": ["q"]})
        assert validator.required == ["q"]


class TestJsonSchema:

    def test_json_schema_round_trips_declared_shape(self):
        validator = compile_schema(_schema(
            {"q": {"type": "string", "description": "terms"}, "opts": {"type": "object"}},
            required=["q"],
        ))
        schema = validator.json_schema()
        assert schema["properties"]["q"] == {"type": "string", "description": "terms"}
        assert schema["properties"]["opts"] == {}
        assert schema["required"] == ["q"]
        assert schema["additionalProperties"] is True


class TestRandomizedSchemas:
    """Seeded random schemas and argument bags checked against a reference oracle."""

    KNOWN_KINDS = ["string", "number", "boolean"]
    OTHER_KINDS = ["object", "array", "integer", None]  # compile to "accept anything"

    def _valid_value(self, kind, rng):
        if kind == "string":
            return "".join(rng.choice(string.ascii_letters) for _ in range(rng.randint(0, 8)))
        if kind == "number":
            return rng.choice([rng.randint(-50, 50), rng.uniform(-1000, 1000)])
        if kind == "boolean":
            return rng.choice([True, False])
        return rng.choice([1, "text", None, [1, 2], {"nested": True}])

    def _wrong_value(self, kind, rng):
        if kind == "string":
            return rng.choice([1.5, True, None, [1]])
        if kind == "number":
            return rng.choice(["1", None, [1.0], {"n": 1}])
        return rng.choice(["true", 2.5, None, {}])

    def _random_schema(self, rng):
        count = rng.randint(0, 5)
        kinds = {f"p{i}": rng.choice(self.KNOWN_KINDS + self.OTHER_KINDS) for i in range(count)}
        mode = rng.choice(["all", "none", "some"])
        if mode == "all":
            required = list(kinds)
        elif mode == "none":
            required = []
        else:
            required = [name for name in kinds if rng.random() < 0.5]
        if rng.random() < 0.25:
            required.append("undeclared_required")
        rng.shuffle(required)

        raw = {
            "type": "object",
            "properties": {name: ({"type": kind} if kind else {}) for name, kind in kinds.items()},
            "required": required,
        }
        return raw, kinds, required

    def test_random_schemas_and_bags(self):
        rng = random.Random(20240611)
        closed_seen = open_seen = 0

        for _ in range(300):
            raw, kinds, required = self._random_schema(rng)
            validator = compile_schema(raw)
            closed = bool(kinds) and set(kinds) <= set(required)
            assert validator.closed is closed
            closed_seen += closed
            open_seen += not closed

            for _ in range(5):
                bag = {}
                expected_errors = set()
                for name, kind in kinds.items():
                    is_required = name in required
                    if not is_required and rng.random() < 0.5:
                        continue
                    if is_required and rng.random() < 0.1:
                        expected_errors.add(name)
                        continue
                    if kind in self.KNOWN_KINDS and rng.random() < 0.2:
                        bag[name] = self._wrong_value(kind, rng)
                        expected_errors.add(name)
                    else:
                        bag[name] = self._valid_value(kind, rng)
                if "undeclared_required" in required:
                    if rng.random() < 0.2:
                        expected_errors.add("undeclared_required")
                    else:
                        bag["undeclared_required"] = self._valid_value(None, rng)
                if rng.random() < 0.4:
                    bag["unexpected"] = "value"

                if expected_errors:
                    with pytest.raises(ValidationError) as exc_info:
                        validator.validate(bag)
                    assert set(exc_info.value.fields) == expected_errors
                    continue

                result = validator.validate(bag)
                expected = dict(bag)
                if closed:
                    expected.pop("unexpected", None)
                assert result == expected
                for name, kind in kinds.items():
                    if kind == "number" and name in result:
                        assert isinstance(result[name], float)

        assert closed_seen and open_seen
