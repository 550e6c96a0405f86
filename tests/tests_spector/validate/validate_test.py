"""Schema and generic validation tests."""

from __future__ import annotations

import json

from typing import Any, Callable

import pytest

from spector.error import (
    DecodeError,
    EncodingError,
    ParseError,
    PredicateTypeError,
    SchemaCompileError,
    SchemaError,
    ValidationError,
)
from spector.intoto.predicate import OtherPredicate
from spector.intoto.statement import Statement
from spector.slsa.provenance import ProvenanceV1
from spector.validate import (
    FORMAT_CHECKER,
    MODE_GENERIC,
    MODE_SCHEMA,
    GenericValidator,
    JSONSchemaValidator,
    statement_validator,
)

POINT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Point",
    "type": "object",
    "properties": {
        "x": {"type": "integer"},
        "y": {"type": "integer"},
        "label": {"type": "string", "format": "uri"},
    },
    "required": ["x", "y"],
}


@pytest.mark.parametrize("mode", [MODE_SCHEMA, MODE_GENERIC])
def test_valid_statement(mode: str, slsa_v1_statement: dict[str, Any]) -> None:
    validator = statement_validator(mode)
    statement = validator.validate(slsa_v1_statement)
    assert isinstance(statement, Statement)
    assert isinstance(statement.predicate, ProvenanceV1)

    # Both modes agree on valid documents
    other = statement_validator(
        MODE_GENERIC if mode == MODE_SCHEMA else MODE_SCHEMA
    ).validate(slsa_v1_statement)
    assert other == statement


@pytest.mark.parametrize("mode", [MODE_SCHEMA, MODE_GENERIC])
def test_unknown_predicate_type(mode: str, slsa_v1_statement: dict[str, Any]) -> None:
    slsa_v1_statement["predicateType"] = "https://slsa.dev/provenance/v12"
    statement = statement_validator(mode).validate(slsa_v1_statement)
    assert isinstance(statement.predicate, OtherPredicate)

    # ... but it is rejected when a predicate is required
    with pytest.raises(PredicateTypeError) as err:
        statement_validator(MODE_GENERIC, "slsa-provenance-v1").validate(
            slsa_v1_statement
        )
    assert err.value.messages[-1] == (
        'Unexpected predicateType: "https://slsa.dev/provenance/v12"'
    )
    assert err.value.path == ["predicateType"]

    with pytest.raises(ValidationError) as verr:
        statement_validator(MODE_SCHEMA, ProvenanceV1).validate(slsa_v1_statement)
    assert [v.path for v in verr.value.violations] == [["predicateType"]]


def test_missing_build_type(slsa_v1_statement: dict[str, Any]) -> None:
    del slsa_v1_statement["predicate"]["buildDefinition"]["buildType"]

    for mode in (MODE_SCHEMA, MODE_GENERIC):
        with pytest.raises(DecodeError) as err:
            statement_validator(mode).validate(slsa_v1_statement)
        assert err.value.messages[-1] == "missing field `buildType`"

    # Bound to the provenance predicate, the schema catches it
    with pytest.raises(ValidationError) as verr:
        statement_validator(MODE_SCHEMA, "slsa-provenance-v1").validate(
            slsa_v1_statement
        )
    assert [v.path for v in verr.value.violations] == [
        ["predicate", "buildDefinition", "buildType"]
    ]


def test_schema_mode_reports_all_violations(
    slsa_v1_statement: dict[str, Any],
) -> None:
    del slsa_v1_statement["subject"]
    del slsa_v1_statement["predicateType"]

    with pytest.raises(ValidationError) as err:
        statement_validator(MODE_SCHEMA).validate(slsa_v1_statement)
    paths = [v.path for v in err.value.violations]
    assert paths == [["predicateType"], ["subject"]]
    assert err.value.violations[0].instance == slsa_v1_statement
    assert str(err.value).startswith("InTotoV1: 2 schema violation(s)")

    # The generic mode stops at the first one
    with pytest.raises(SchemaError) as serr:
        statement_validator(MODE_GENERIC).validate(slsa_v1_statement)
    assert serr.value.messages == ["missing field `subject`"]


def test_schema_mode_violations(slsa_v1_statement: dict[str, Any]) -> None:
    slsa_v1_statement["_type"] = "https://in-toto.io/Statement/v0.1"
    slsa_v1_statement["subject"] = []
    slsa_v1_statement["predicate"]["runDetails"]["metadata"]["startedOn"] = "now"

    with pytest.raises(ValidationError) as err:
        statement_validator(MODE_SCHEMA, ProvenanceV1).validate(slsa_v1_statement)
    assert [v.pointer for v in err.value.violations] == [
        "/_type",
        "/predicate/runDetails/metadata/startedOn",
        "/subject",
    ]


def test_violations_order(slsa_v1_statement: dict[str, Any]) -> None:
    subject = slsa_v1_statement["subject"][0]
    slsa_v1_statement["subject"] = [{"digest": subject["digest"]} for _ in range(12)]

    with pytest.raises(ValidationError) as err:
        statement_validator(MODE_SCHEMA).validate(slsa_v1_statement)
    # Array indexes are sorted numerically
    assert [v.path for v in err.value.violations] == [
        ["subject", index, "name"] for index in range(12)
    ]


@pytest.mark.parametrize(
    "mode, error, path",
    [
        (MODE_SCHEMA, ValidationError, None),
        (MODE_GENERIC, EncodingError, ["subject", 0, "content"]),
    ],
)
def test_invalid_content(
    slsa_v1_statement: dict[str, Any], mode: str, error: type, path: list | None
) -> None:
    slsa_v1_statement["subject"][0]["content"] = "***"
    with pytest.raises(error) as err:
        statement_validator(mode).validate(slsa_v1_statement)
    if path is None:
        assert [v.path for v in err.value.violations] == [["subject", 0, "content"]]
    else:
        assert err.value.path == path


def test_unknown_digest_algorithm(slsa_v1_statement: dict[str, Any]) -> None:
    slsa_v1_statement["subject"][0]["digest"] = {"crc32": "abcd"}
    for mode in (MODE_SCHEMA, MODE_GENERIC):
        with pytest.raises(SchemaError) as err:
            statement_validator(mode).validate(slsa_v1_statement)
        assert err.value.path == ["subject", 0, "digest", "crc32"]


def test_validate_json_and_file(
    slsa_v1_statement: dict[str, Any], write_json: Callable[[str, Any], str]
) -> None:
    validator = statement_validator()
    statement = validator.validate_json(json.dumps(slsa_v1_statement))
    assert statement.as_dict() == slsa_v1_statement
    assert validator.validate_file(write_json("doc.json", slsa_v1_statement)) == (
        statement
    )

    with pytest.raises(ParseError):
        validator.validate_json('{"_type": ')
    with pytest.raises(ParseError):
        validator.validate_file("missing.json")


def test_statement_validator_arguments() -> None:
    with pytest.raises(ValueError):
        statement_validator("strict")
    with pytest.raises(KeyError):
        statement_validator(MODE_SCHEMA, "slsa-provenance-v3")

    validator = statement_validator(MODE_SCHEMA, "https://slsa.dev/provenance/v1")
    assert isinstance(validator, JSONSchemaValidator)
    assert validator.schema["title"] == "InTotoV1SLSAProvenanceV1"
    assert isinstance(statement_validator(MODE_GENERIC), GenericValidator)


def test_json_schema_validator() -> None:
    validator: JSONSchemaValidator = JSONSchemaValidator(POINT_SCHEMA)
    assert validator.validate({"x": 1, "y": 2}) == {"x": 1, "y": 2}
    assert validator.is_valid({"x": 1, "y": 2, "label": "https://example.com"})
    assert not validator.is_valid({"x": 1, "y": 2, "label": "not a uri"})

    violations = validator.violations({"label": 1})
    assert [v.pointer for v in violations] == ["/label", "/x", "/y"]

    with pytest.raises(ValidationError) as err:
        validator.validate([])
    assert str(err.value).startswith("Point: 1 schema violation(s)")


def test_json_schema_validator_decoder() -> None:
    validator = JSONSchemaValidator(POINT_SCHEMA, lambda doc: (doc["x"], doc["y"]))
    assert validator.validate({"x": 1, "y": 2}) == (1, 2)
    assert GenericValidator(lambda doc: doc["x"]).validate({"x": 3}) == 3
    assert GenericValidator().validate([1]) == [1]


@pytest.mark.parametrize(
    "schema",
    [
        [],
        {"type": "point"},
        {"properties": {"x": {"minimum": "zero"}}},
    ],
)
def test_invalid_schema(schema: Any) -> None:
    with pytest.raises(SchemaCompileError):
        JSONSchemaValidator(schema)


@pytest.mark.parametrize(
    "fmt, valid, invalid",
    [
        ("uri", "https://example.com/a", "example.com/a"),
        ("uri-reference", "../a/b", "a b"),
        ("byte", "aGVsbG8=", "aGVsbG8"),
        ("date-time", "2023-01-01T12:00:00+01:00", "2023-01-01T12:00:00"),
    ],
)
def test_format_checker(fmt: str, valid: str, invalid: str) -> None:
    assert FORMAT_CHECKER.conforms(valid, fmt)
    assert not FORMAT_CHECKER.conforms(invalid, fmt)
    # Formats only apply to strings
    assert FORMAT_CHECKER.conforms(12, fmt)
