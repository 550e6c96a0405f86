"""spector command line tests."""

from __future__ import annotations

import json

from typing import TYPE_CHECKING

import pytest
import yaml

from spector.cli.main import main

if TYPE_CHECKING:
    from typing import Any, Callable

POINT_SCHEMA: dict[str, Any] = {
    "title": "Point",
    "type": "object",
    "properties": {"x": {"type": "integer"}, "y": {"type": "integer"}},
    "required": ["x", "y"],
}


def printed_document(out: str) -> Any:
    """Return the document printed after a successful validation."""
    _, _, document = out.partition("Document: ")
    return json.loads(document)


def test_validate(
    capsys: pytest.CaptureFixture,
    slsa_v1_statement: dict[str, Any],
    write_json: Callable[[str, Any], str],
) -> None:
    filename = write_json("provenance.json", slsa_v1_statement)
    assert main(["validate", "in-toto-v1", "--file", filename]) == 0
    out, err = capsys.readouterr()
    assert out.startswith("Valid InTotoV1 SLSAProvenanceV1 document\n")
    assert printed_document(out) == slsa_v1_statement

    assert (
        main(
            [
                "validate",
                "in-toto-v1",
                "-f",
                filename,
                "--predicate",
                "slsa-provenance-v1",
                "--mode",
                "generic",
            ]
        )
        == 0
    )
    out, _ = capsys.readouterr()
    assert out.startswith("Valid InTotoV1 SLSAProvenanceV1 document\n")


def test_validate_yaml(
    capsys: pytest.CaptureFixture, slsa_v02_statement: dict[str, Any]
) -> None:
    with open("provenance.yaml", "w") as f:
        yaml.safe_dump(slsa_v02_statement, f)
    assert main(["validate", "in-toto-v1", "--file", "provenance.yaml"]) == 0
    out, _ = capsys.readouterr()
    assert out.startswith("Valid InTotoV1 SLSAProvenanceV02 document\n")
    assert printed_document(out) == slsa_v02_statement


@pytest.mark.parametrize("mode", ["schema", "generic"])
def test_validate_unexpected_predicate_type(
    capsys: pytest.CaptureFixture,
    slsa_v1_statement: dict[str, Any],
    write_json: Callable[[str, Any], str],
    mode: str,
) -> None:
    slsa_v1_statement["predicateType"] = "https://slsa.dev/provenance/v12"
    filename = write_json("provenance.json", slsa_v1_statement)

    assert (
        main(
            [
                "validate",
                "in-toto-v1",
                "--file",
                filename,
                "--predicate",
                "slsa-provenance-v1",
                "--mode",
                mode,
            ]
        )
        == 1
    )
    out, err = capsys.readouterr()
    assert out == ""
    assert 'Unexpected predicateType: "https://slsa.dev/provenance/v12"\n' in err

    # Without --predicate the statement is valid, the predicate is kept as is
    assert main(["validate", "in-toto-v1", "--file", filename, "--mode", mode]) == 0
    out, _ = capsys.readouterr()
    assert out.startswith("Valid InTotoV1 OtherPredicate document\n")
    assert printed_document(out) == slsa_v1_statement


@pytest.mark.parametrize("mode", ["schema", "generic"])
def test_validate_missing_build_type(
    capsys: pytest.CaptureFixture,
    slsa_v1_statement: dict[str, Any],
    write_json: Callable[[str, Any], str],
    mode: str,
) -> None:
    del slsa_v1_statement["predicate"]["buildDefinition"]["buildType"]
    filename = write_json("provenance.json", slsa_v1_statement)

    assert main(["validate", "in-toto-v1", "--file", filename, "--mode", mode]) == 1
    out, err = capsys.readouterr()
    assert out == ""
    assert (
        "Error parsing JSON: missing field `buildType`"
        " (at /predicate/buildDefinition)\n" in err
    )


def test_validate_schema_violations(
    capsys: pytest.CaptureFixture,
    slsa_v1_statement: dict[str, Any],
    write_json: Callable[[str, Any], str],
) -> None:
    del slsa_v1_statement["predicate"]["buildDefinition"]["buildType"]
    del slsa_v1_statement["predicate"]["buildDefinition"]["externalParameters"]
    filename = write_json("provenance.json", slsa_v1_statement)

    assert (
        main(
            [
                "validate",
                "in-toto-v1",
                "--file",
                filename,
                "--predicate",
                "https://slsa.dev/provenance/v1",
            ]
        )
        == 1
    )
    _, err = capsys.readouterr()
    assert (
        "provenance.json: InTotoV1SLSAProvenanceV1: 2 schema violation(s)" in err
    )
    assert "path: /predicate/buildDefinition/buildType" in err
    assert "path: /predicate/buildDefinition/externalParameters" in err


def test_validate_mode_from_config(
    capsys: pytest.CaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
    slsa_v1_statement: dict[str, Any],
    write_json: Callable[[str, Any], str],
) -> None:
    slsa_v1_statement["subject"][0]["content"] = "***"
    filename = write_json("provenance.json", slsa_v1_statement)

    # Schema mode by default
    assert main(["validate", "in-toto-v1", "--file", filename]) == 1
    _, err = capsys.readouterr()
    assert "provenance.json: InTotoV1: 1 schema violation(s)" in err
    assert "path: /subject/0/content" in err

    with open("spector.toml", "w") as f:
        f.write('[validate]\nmode = "generic"\n')
    monkeypatch.setenv("SPECTOR_CONFIG", "spector.toml")
    assert main(["validate", "in-toto-v1", "--file", filename]) == 1
    _, err = capsys.readouterr()
    assert "Error parsing JSON: " in err
    assert "(at /subject/0/content)" in err


def test_validate_several_files(
    capsys: pytest.CaptureFixture,
    slsa_v1_statement: dict[str, Any],
    write_json: Callable[[str, Any], str],
) -> None:
    valid = write_json("valid.json", slsa_v1_statement)
    with open("invalid.json", "w") as f:
        f.write('{"_type": ')

    assert main(["validate", "in-toto-v1", "--file", valid, "invalid.json"]) == 1
    out, err = capsys.readouterr()
    assert out.startswith("Valid InTotoV1 SLSAProvenanceV1 document\n")
    assert "Error parsing JSON: Invalid JSON" in err

    assert main(["validate", "in-toto-v1", "--file", "missing.json"]) == 1
    _, err = capsys.readouterr()
    assert "cannot read missing.json" in err


def test_validate_unknown_predicate(
    capsys: pytest.CaptureFixture,
    slsa_v1_statement: dict[str, Any],
    write_json: Callable[[str, Any], str],
) -> None:
    filename = write_json("provenance.json", slsa_v1_statement)
    assert (
        main(
            [
                "validate",
                "in-toto-v1",
                "--file",
                filename,
                "--predicate",
                "slsa-provenance-v3",
            ]
        )
        == 1
    )
    _, err = capsys.readouterr()
    assert "unknown predicate slsa-provenance-v3" in err
    assert "slsa-provenance-v1" in err


def test_validate_json_schema(
    capsys: pytest.CaptureFixture, write_json: Callable[[str, Any], str]
) -> None:
    schema = write_json("point.schema.json", POINT_SCHEMA)
    valid = write_json("valid.json", {"x": 1, "y": 2})
    invalid = write_json("invalid.json", {"x": "1"})

    assert main(["validate", "json-schema", "-s", schema, "-f", valid]) == 0
    out, _ = capsys.readouterr()
    assert out == "Valid document valid.json\n"

    assert main(["validate", "json-schema", "-s", schema, "-f", valid, invalid]) == 1
    out, err = capsys.readouterr()
    assert out == "Valid document valid.json\n"
    assert "invalid.json: Point: 2 schema violation(s)" in err

    bad_schema = write_json("bad.schema.json", {"type": "point"})
    assert main(["validate", "json-schema", "-s", bad_schema, "-f", valid]) == 1
    _, err = capsys.readouterr()
    assert "invalid schema" in err


def test_schema_generate(capsys: pytest.CaptureFixture) -> None:
    assert main(["schema-generate", "in-toto-v1"]) == 0
    out, _ = capsys.readouterr()
    schema = json.loads(out)
    assert schema["title"] == "InTotoV1"

    assert (
        main(["schema-generate", "in-toto-v1", "--predicate", "slsa-provenance-v0.2"])
        == 0
    )
    out, _ = capsys.readouterr()
    schema = json.loads(out)
    assert schema["title"] == "InTotoV1SLSAProvenanceV02"
    assert "SLSAProvenanceV02" in schema["$defs"]

    assert main(["schema-generate", "in-toto-v1", "--predicate", "unknown"]) == 1


def test_code_generate(
    capsys: pytest.CaptureFixture, write_json: Callable[[str, Any], str]
) -> None:
    schema = write_json("point.schema.json", POINT_SCHEMA)
    assert main(["code-generate", "json-schema", "--file", schema]) == 0
    out, _ = capsys.readouterr()
    assert "class Point:" in out
    assert "    x: int\n" in out

    not_a_schema = write_json("list.json", [])
    assert main(["code-generate", "json-schema", "--file", not_a_schema]) == 1
    _, err = capsys.readouterr()
    assert "invalid schema" in err


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["validate"],
        ["validate", "in-toto-v1"],
        ["validate", "in-toto-v1", "--file", "a.json", "--mode", "strict"],
        ["code-generate", "json-schema"],
    ],
)
def test_invalid_arguments(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as err:
        main(argv)
    assert err.value.code == 2
