"""in-toto v1 statement tests."""

from __future__ import annotations

import json

from typing import Any

import pytest

from spector.error import (
    DecodeError,
    EncodingError,
    FormatError,
    SchemaError,
)
from spector.intoto.predicate import OtherPredicate, builtin_registry
from spector.intoto.statement import (
    STATEMENT_TYPE,
    DigestAlgorithm,
    DigestSet,
    Statement,
    Subject,
)
from spector.slsa.provenance import ProvenanceV1
from spector.slsa.provenance_v02 import ProvenanceV02

SHA256 = "98e967576c9f7401ddf9659fe7fcd8a23bd172ac4206fadec7506fcd1daa3f75"


def test_load_slsa_v1_statement(slsa_v1_statement: dict[str, Any]) -> None:
    statement = Statement.load_dict(slsa_v1_statement)
    assert statement.type == STATEMENT_TYPE
    assert statement.predicate_type == "https://slsa.dev/provenance/v1"
    assert isinstance(statement.predicate, ProvenanceV1)
    assert len(statement.subject) == 1
    assert statement.subject[0].name == "curl-7.72.0.tar.bz2"
    assert statement.subject[0].digest["sha256"] == SHA256
    assert statement.as_dict() == slsa_v1_statement
    assert Statement.load_json(statement.as_json()) == statement


def test_load_slsa_v02_statement(slsa_v02_statement: dict[str, Any]) -> None:
    statement = Statement.load_dict(slsa_v02_statement)
    assert isinstance(statement.predicate, ProvenanceV02)
    assert statement.as_dict() == slsa_v02_statement


def test_unknown_predicate_type(slsa_v1_statement: dict[str, Any]) -> None:
    # Typo in the predicate type: the predicate is kept as is
    slsa_v1_statement["predicateType"] = "https://slsa.dev/provenance/v12"
    statement = Statement.load_dict(slsa_v1_statement)
    assert isinstance(statement.predicate, OtherPredicate)
    assert statement.predicate.value == slsa_v1_statement["predicate"]
    assert statement.as_dict() == slsa_v1_statement


def test_missing_build_type(slsa_v1_statement: dict[str, Any]) -> None:
    del slsa_v1_statement["predicate"]["buildDefinition"]["buildType"]
    with pytest.raises(DecodeError) as err:
        Statement.load_dict(slsa_v1_statement)
    assert not isinstance(err.value, SchemaError)
    assert err.value.messages[-1] == "missing field `buildType`"
    assert err.value.path == ["predicate", "buildDefinition"]


def test_invalid_subject_content(slsa_v1_statement: dict[str, Any]) -> None:
    slsa_v1_statement["subject"][0]["content"] = "not base64!"
    # The predicate is never decoded
    slsa_v1_statement["predicate"] = {}
    with pytest.raises(EncodingError) as err:
        Statement.load_dict(slsa_v1_statement)
    assert err.value.path == ["subject", 0, "content"]


@pytest.mark.parametrize(
    "update, error, message, path",
    [
        ({"_type": None}, SchemaError, "missing/invalid _type", ["_type"]),
        (
            {"_type": "https://in-toto.io/Statement/v0.1"},
            SchemaError,
            "missing/invalid _type",
            ["_type"],
        ),
        ({"subject": None}, SchemaError, "missing field `subject`", []),
        ({"subject": []}, SchemaError, "empty subject list", ["subject"]),
        (
            {"subject": {"name": "x"}},
            SchemaError,
            "invalid type: object, expected array",
            ["subject"],
        ),
        (
            {"subject": [{"digest": {"sha256": SHA256}}]},
            SchemaError,
            "missing field `name`",
            ["subject", 0],
        ),
        (
            {"subject": [{"name": "x"}]},
            SchemaError,
            "missing field `digest`",
            ["subject", 0],
        ),
        (
            {"subject": [{"name": "x", "digest": {}}]},
            SchemaError,
            "empty digest set",
            ["subject", 0, "digest"],
        ),
        (
            {"subject": [{"name": "x", "digest": {"crc32": "abcd"}}]},
            SchemaError,
            "unknown digest algorithm `crc32`",
            ["subject", 0, "digest", "crc32"],
        ),
        (
            {"subject": [{"name": "x", "digest": {"sha256": SHA256}, "uri": "x"}]},
            FormatError,
            None,
            ["subject", 0, "uri"],
        ),
        ({"predicateType": None}, SchemaError, "missing field `predicateType`", []),
        ({"predicateType": "not a uri"}, FormatError, None, ["predicateType"]),
        ({"predicate": None}, SchemaError, "missing field `predicate`", []),
    ],
)
def test_invalid_statement(
    slsa_v1_statement: dict[str, Any],
    update: dict[str, Any],
    error: type,
    message: str | None,
    path: list,
) -> None:
    for key, value in update.items():
        if value is None:
            del slsa_v1_statement[key]
        else:
            slsa_v1_statement[key] = value

    with pytest.raises(error) as err:
        Statement.load_dict(slsa_v1_statement)
    if message is not None:
        assert err.value.messages[-1] == message
    assert err.value.path == path


def test_statement_not_an_object() -> None:
    with pytest.raises(SchemaError):
        Statement.load_dict([])
    with pytest.raises(SchemaError):
        Statement.load_json("{}")


def test_statement_registry(slsa_v1_statement: dict[str, Any]) -> None:
    # Without the provenance v1 entry, the predicate is not decoded
    registry = builtin_registry()
    registry.register(
        OtherPredicate, type_uri="https://slsa.dev/provenance/v1", replace=True
    )
    statement = Statement.load_dict(slsa_v1_statement, registry=registry)
    assert isinstance(statement.predicate, OtherPredicate)


def test_statement_init(slsa_v1_statement: dict[str, Any]) -> None:
    subject = Subject("hello", {"sha256": SHA256})
    predicate = ProvenanceV1.load_dict(slsa_v1_statement["predicate"])

    statement = Statement([subject], ProvenanceV1.PREDICATE_TYPE, predicate)
    assert statement.predicate is predicate
    assert repr(statement).startswith("Statement('https://slsa.dev/provenance/v1'")

    with pytest.raises(ValueError):
        Statement([], ProvenanceV1.PREDICATE_TYPE, predicate)

    # The predicate class must match the predicate type
    with pytest.raises(ValueError):
        Statement([subject], "https://slsa.dev/provenance/v0.2", predicate)

    # Known predicate types must be decoded
    other = OtherPredicate(slsa_v1_statement["predicate"])
    with pytest.raises(ValueError):
        Statement(
            [subject],
            ProvenanceV1.PREDICATE_TYPE,
            other,
            registry=builtin_registry(),
        )
    assert Statement([subject], ProvenanceV1.PREDICATE_TYPE, other).predicate is other

    with pytest.raises(FormatError):
        Statement([subject], "provenance", predicate)


def test_digest_set() -> None:
    digests = DigestSet({"SHA256": SHA256, DigestAlgorithm.SHA1: "abcd"})
    assert digests.algorithms == [DigestAlgorithm.SHA256, DigestAlgorithm.SHA1]
    assert digests.as_dict() == {"sha256": SHA256, "sha1": "abcd"}
    assert "sha256" in digests
    assert "Sha1" in digests
    assert DigestAlgorithm.SHA256 in digests
    assert "md5" not in digests
    assert "crc32" not in digests
    assert digests[DigestAlgorithm.SHA1] == "abcd"
    assert len(digests) == 2
    assert repr(digests) == f"DigestSet({{'sha256': '{SHA256}', 'sha1': 'abcd'}})"

    with pytest.raises(ValueError):
        DigestSet({})
    with pytest.raises(ValueError):
        DigestSet({"crc32": "abcd"})

    with pytest.raises(SchemaError) as err:
        DigestSet.load_dict({"sha256": 12})
    assert err.value.path == ["sha256"]
    with pytest.raises(SchemaError):
        DigestSet.load_dict("sha256")


def test_subject() -> None:
    subject = Subject.load_dict(
        {
            "name": "hello",
            "digest": {"SHA256": SHA256},
            "uri": "https://example.com/hello",
            "mediaType": "application/octet-stream",
            "content": "aGVsbG8=",
            "annotations": {"arch": "x86_64"},
        }
    )
    assert subject.content == b"hello"
    assert subject.uri == "https://example.com/hello"
    assert subject.download_location is None
    assert subject.as_dict() == {
        "name": "hello",
        "digest": {"sha256": SHA256},
        "uri": "https://example.com/hello",
        "mediaType": "application/octet-stream",
        "content": "aGVsbG8=",
        "annotations": {"arch": "x86_64"},
    }
    assert repr(subject).startswith("Subject('hello', DigestSet(")

    descriptor = subject.as_resource_descriptor()
    assert descriptor.name == "hello"
    assert descriptor.digest == {"sha256": SHA256}
    assert descriptor.is_valid

    with pytest.raises(DecodeError) as err:
        Subject.load_dict({"name": "x", "digest": {"sha1": "a"}, "mediaType": 1})
    assert err.value.path == ["mediaType"]


def test_json_schema() -> None:
    schema = Statement.json_schema()
    assert schema["title"] == "InTotoV1"
    assert set(schema["required"]) == {"_type", "subject", "predicateType", "predicate"}
    assert schema["properties"]["_type"]["const"] == STATEMENT_TYPE
    assert schema["properties"]["subject"]["minItems"] == 1
    # Without predicate, any JSON object is accepted
    assert schema["properties"]["predicate"]["type"] == "object"
    json.dumps(schema)

    bound = Statement.json_schema(ProvenanceV1)
    assert bound["title"] == "InTotoV1SLSAProvenanceV1"
    assert bound["properties"]["predicateType"]["const"] == ProvenanceV1.PREDICATE_TYPE
    assert "$ref" in json.dumps(bound["properties"]["predicate"])

    # Predicates without a type leave the schema open
    assert Statement.json_schema(OtherPredicate) == schema
