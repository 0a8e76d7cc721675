"""
Tests for the schema parser.

Covers parse_schema (first error wins), validate_schema_document (all errors
plus warnings), normalization (labels, display order, options placement),
and reading schema documents from disk.
"""

import copy
import json

import pytest

from listdata import errors
from listdata.dsl.parser import (
    load_schema_document,
    parse_fields,
    parse_schema,
    schema_to_document,
    validate_schema_document,
)
from listdata.dsl.types import MultiselectField, NumberField, SelectField, TextField
from listdata.errors import SchemaError
from tests.conftest import SCHEMAS_DIR


def _doc(*fields, name="Test list"):
    return {"name": name, "fields": list(fields)}


def _code(document) -> str:
    with pytest.raises(SchemaError) as exc_info:
        parse_schema(document)
    return exc_info.value.code


class TestParseValidSchemas:
    """Well-formed documents."""

    def test_preserves_length_keys_and_types(self):
        raw = [
            {"key": "name", "type": "text"},
            {"key": "email", "type": "email"},
            {"key": "age", "type": "number"},
            {"key": "status", "type": "select", "options": ["a", "b"]},
            {"key": "tags", "type": "multiselect", "options": ["x", "y"]},
            {"key": "born", "type": "date"},
            {"key": "seen", "type": "datetime"},
            {"key": "vip", "type": "boolean"},
            {"key": "site", "type": "url"},
            {"key": "phone", "type": "tel"},
            {"key": "notes", "type": "textarea"},
        ]
        fields = parse_fields(raw)
        assert len(fields) == len(raw)
        assert [(f.key, f.type) for f in fields] == [(r["key"], r["type"]) for r in raw]

    def test_returns_tagged_variants(self):
        parsed = parse_schema(
            _doc(
                {"key": "name", "type": "text"},
                {"key": "qty", "type": "number", "validation": {"min": 0}},
                {"key": "status", "type": "select", "options": ["open"]},
                {"key": "tags", "type": "multiselect", "options": ["x"]},
            )
        )
        kinds = [type(f) for f in parsed.fields]
        assert kinds == [TextField, NumberField, SelectField, MultiselectField]
        assert parsed.fields[1].validation.min == 0

    def test_label_defaults_to_key(self):
        parsed = parse_schema(_doc({"key": "status", "type": "text"}))
        assert parsed.fields[0].label == "status"

    def test_camel_case_attributes_are_read(self):
        parsed = parse_schema(
            _doc(
                {
                    "key": "name",
                    "type": "text",
                    "label": "Name",
                    "defaultValue": "anon",
                    "helpText": "Full name",
                    "validation": {"minLength": 2, "maxLength": 10, "pattern": "[A-Za-z ]+"},
                }
            )
        )
        field = parsed.fields[0]
        assert field.default_value == "anon"
        assert field.help_text == "Full name"
        assert field.validation.min_length == 2
        assert field.validation.max_length == 10

    def test_sorted_by_display_order_stable(self):
        parsed = parse_schema(
            _doc(
                {"key": "a", "type": "text", "displayOrder": 2},
                {"key": "b", "type": "text", "displayOrder": 1},
                {"key": "c", "type": "text", "displayOrder": 1},
            )
        )
        assert parsed.keys() == ["b", "c", "a"]

    def test_display_order_defaults_to_position(self):
        parsed = parse_schema(
            _doc(
                {"key": "a", "type": "text"},
                {"key": "b", "type": "text"},
                {"key": "c", "type": "text", "displayOrder": 0},
            )
        )
        assert [f.display_order for f in parsed.fields] == [0, 0, 1]
        assert parsed.keys() == ["a", "c", "b"]

    def test_options_under_validation_are_accepted(self):
        parsed = parse_schema(
            _doc({"key": "status", "type": "select", "validation": {"options": ["a", "b"]}})
        )
        assert parsed.fields[0].options == ["a", "b"]

    def test_options_dropped_from_non_choice_fields(self):
        parsed = parse_schema(_doc({"key": "name", "type": "text", "options": ["x"]}))
        assert not hasattr(parsed.fields[0], "options")

    def test_forward_visibility_reference_allowed(self):
        parsed = parse_schema(
            _doc(
                {
                    "key": "tier",
                    "type": "text",
                    "visibility": {"field": "status", "operator": "isNotEmpty"},
                },
                {"key": "status", "type": "text"},
            )
        )
        assert parsed.field_map()["tier"].visibility.field == "status"

    def test_nested_condition_is_unwrapped(self):
        parsed = parse_schema(
            _doc(
                {"key": "status", "type": "text"},
                {
                    "key": "tier",
                    "type": "text",
                    "visibility": {
                        "condition": {"field": "status", "operator": "equals", "value": "active"}
                    },
                },
            )
        )
        condition = parsed.field_map()["tier"].visibility
        assert (condition.field, condition.operator, condition.value) == ("status", "equals", "active")

    def test_parsing_does_not_mutate_input(self, status_tier_schema):
        before = copy.deepcopy(status_tier_schema)
        parse_schema(status_tier_schema)
        assert status_tier_schema == before


class TestParseRejections:
    """Each rejection carries its error code."""

    def test_unknown_type(self):
        assert _code(_doc({"key": "a", "type": "color"})) == errors.INVALID_FIELD_TYPE

    def test_missing_type(self):
        assert _code(_doc({"key": "a"})) == errors.INVALID_FIELD_TYPE

    def test_duplicate_key(self):
        document = _doc({"key": "a", "type": "text"}, {"key": "a", "type": "number"})
        with pytest.raises(SchemaError) as exc_info:
            parse_schema(document)
        assert exc_info.value.code == errors.DUPLICATE_FIELD_KEY
        assert exc_info.value.field == "a"

    @pytest.mark.parametrize("options", [None, [], "a,b"])
    def test_choice_field_without_options(self, options):
        field = {"key": "s", "type": "multiselect"}
        if options is not None:
            field["options"] = options
        assert _code(_doc(field)) == errors.MISSING_OPTIONS

    def test_unknown_visibility_reference(self):
        document = _doc(
            {"key": "a", "type": "text", "visibility": {"field": "nope", "operator": "isEmpty"}}
        )
        assert _code(document) == errors.UNKNOWN_VISIBILITY_REFERENCE

    def test_self_visibility_reference(self):
        document = _doc(
            {"key": "a", "type": "text", "visibility": {"field": "a", "operator": "isEmpty"}}
        )
        assert _code(document) == errors.UNKNOWN_VISIBILITY_REFERENCE

    def test_visibility_cycle(self):
        document = _doc(
            {"key": "a", "type": "text", "visibility": {"field": "b", "operator": "isEmpty"}},
            {"key": "b", "type": "text", "visibility": {"field": "a", "operator": "isEmpty"}},
        )
        assert _code(document) == errors.CIRCULAR_VISIBILITY_REFERENCE

    def test_unsupported_operator(self):
        document = _doc(
            {"key": "a", "type": "text"},
            {"key": "b", "type": "text", "visibility": {"field": "a", "operator": "contains"}},
        )
        assert _code(document) == errors.INVALID_FIELD_DEFINITION

    def test_pattern_must_compile(self):
        document = _doc({"key": "a", "type": "text", "validation": {"pattern": "(unclosed"}})
        assert _code(document) == errors.INVALID_FIELD_DEFINITION

    def test_number_bounds_must_be_ordered(self):
        document = _doc({"key": "n", "type": "number", "validation": {"min": 5, "max": 1}})
        assert _code(document) == errors.INVALID_FIELD_DEFINITION

    def test_step_must_be_positive(self):
        document = _doc({"key": "n", "type": "number", "validation": {"step": 0}})
        assert _code(document) == errors.INVALID_FIELD_DEFINITION

    @pytest.mark.parametrize(
        "document",
        [
            "not an object",
            {"fields": [{"key": "a", "type": "text"}]},
            {"name": "x", "fields": []},
            {"name": "x", "fields": ["a"]},
            {"name": "x", "fields": [{"type": "text"}]},
        ],
    )
    def test_structural_problems(self, document):
        assert _code(document) == errors.INVALID_FIELD_DEFINITION


class TestValidateSchemaDocument:
    """Report mode collects everything."""

    def test_collects_every_error(self):
        document = json.loads((SCHEMAS_DIR / "broken.json").read_text())
        report = validate_schema_document(document)
        assert not report.is_valid
        assert [e["code"] for e in report.errors] == [
            errors.INVALID_FIELD_TYPE,
            errors.MISSING_OPTIONS,
            errors.UNKNOWN_VISIBILITY_REFERENCE,
        ]
        assert [e["field"] for e in report.errors] == ["a", "b", "c"]

    def test_valid_document_counts_and_warnings(self):
        report = validate_schema_document(
            _doc(
                {"key": "status", "type": "select", "options": ["on", "off"], "required": True},
                {
                    "key": "reason",
                    "type": "text",
                    "required": True,
                    "visibility": {"field": "status", "operator": "equals", "value": "off"},
                },
                {"key": "note", "type": "text", "displayOrder": -1},
            )
        )
        assert report.is_valid
        assert report.errors == []
        assert report.field_count == 3
        assert report.required_field_count == 2
        assert report.conditional_field_count == 1
        assert len(report.warnings) == 2
        assert "reason" in report.warnings[0]
        assert "negative display order" in report.warnings[1]

    def test_non_object_document(self):
        report = validate_schema_document(["nope"])
        assert not report.is_valid
        assert report.field_count == 0


class TestSchemaDocumentRoundTrip:
    def test_reparses_to_same_fields(self):
        document = json.loads((SCHEMAS_DIR / "contacts.json").read_text())
        parsed = parse_schema(document)
        again = parse_schema(schema_to_document(parsed))
        assert again.fields == parsed.fields
        assert again.name == "Contacts"
        assert again.description == "People we work with"

    def test_authoring_format_uses_camel_case(self):
        parsed = parse_schema(
            _doc({"key": "n", "type": "text", "validation": {"maxLength": 3}, "defaultValue": "x"})
        )
        field_doc = schema_to_document(parsed)["fields"][0]
        assert field_doc["displayOrder"] == 0
        assert field_doc["defaultValue"] == "x"
        assert field_doc["validation"] == {"maxLength": 3}


class TestLoadSchemaDocument:
    def test_loads_yaml(self):
        document = load_schema_document(SCHEMAS_DIR / "issues.yaml")
        assert document["name"] == "Widget issues"
        assert parse_schema(document).keys() == ["title", "body", "state", "labels"]

    def test_loads_json(self):
        assert load_schema_document(SCHEMAS_DIR / "contacts.json")["name"] == "Contacts"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(SchemaError) as exc_info:
            load_schema_document(path)
        assert exc_info.value.code == errors.INVALID_FIELD_DEFINITION

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SchemaError):
            load_schema_document(path)
