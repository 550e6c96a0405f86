from __future__ import annotations

import copy
import json

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from typing import Any, Callable

STATEMENT_TYPE = "https://in-toto.io/Statement/v1"

SHA256 = "98e967576c9f7401ddf9659fe7fcd8a23bd172ac4206fadec7506fcd1daa3f75"

# Adapted from https://slsa.dev/spec/v1.0/example
SLSA_V1_STATEMENT: dict[str, Any] = {
    "_type": STATEMENT_TYPE,
    "subject": [
        {
            "name": "curl-7.72.0.tar.bz2",
            "digest": {"sha256": SHA256},
        }
    ],
    "predicateType": "https://slsa.dev/provenance/v1",
    "predicate": {
        "buildDefinition": {
            "buildType": "https://github.com/slsa-framework/slsa-github-generator/generic@v1",
            "externalParameters": {
                "workflow": {
                    "ref": "refs/heads/main",
                    "repository": "https://github.com/curl/curl",
                    "path": ".github/workflows/release.yml",
                }
            },
            "internalParameters": {"github": {"event_name": "push"}},
            "resolvedDependencies": [
                {
                    "uri": "git+https://github.com/curl/curl@refs/heads/main",
                    "digest": {"gitCommit": "7fd1a60b01f91b314f59955a4e4d4e80d8edf11d"},
                }
            ],
        },
        "runDetails": {
            "builder": {
                "id": "https://github.com/slsa-framework/slsa-github-generator/.github/workflows/generator_generic_slsa3.yml@refs/tags/v1.5.0",
                "version": {"slsa-github-generator": "v1.5.0"},
            },
            "metadata": {
                "invocationId": "https://github.com/curl/curl/actions/runs/1/attempts/1",
                "startedOn": "2023-01-01T12:34:56Z",
                "finishedOn": "2023-01-01T12:44:56Z",
            },
            "byproducts": [
                {"name": "build.log", "mediaType": "text/plain", "content": "YnVpbGQ="}
            ],
        },
    },
}

# Adapted from https://slsa.dev/spec/v0.2/provenance
SLSA_V02_STATEMENT: dict[str, Any] = {
    "_type": STATEMENT_TYPE,
    "subject": [{"name": "hello", "digest": {"sha512": "a" * 128}}],
    "predicateType": "https://slsa.dev/provenance/v0.2",
    "predicate": {
        "builder": {"id": "https://github.com/Attestations/GitHubHostedActions@v1"},
        "buildType": "https://github.com/Attestations/GitHubActionsWorkflow@v1",
        "invocation": {
            "configSource": {
                "uri": "git+https://github.com/curl/curl-docker@master",
                "digest": {"sha1": "d6525c840a62b398424a78d792f457477135d0cf"},
                "entryPoint": "build.yaml:maketgz",
            },
            "parameters": {},
        },
        "metadata": {
            "buildInvocationId": "1234",
            "buildStartedOn": "2020-08-19T08:38:00Z",
            "completeness": {
                "parameters": True,
                "environment": False,
                "materials": False,
            },
            "reproducible": False,
        },
        "materials": [
            {
                "uri": "git+https://github.com/curl/curl-docker@master",
                "digest": {"sha1": "d6525c840a62b398424a78d792f457477135d0cf"},
            }
        ],
    },
}

SCAI_STATEMENT: dict[str, Any] = {
    "_type": STATEMENT_TYPE,
    "subject": [{"name": "app.bin", "digest": {"sha256": SHA256}}],
    "predicateType": "https://in-toto.io/attestation/scai/attribute-report/v0.2",
    "predicate": {
        "attributes": [
            {
                "attribute": "WITH_STACK_PROTECTION",
                "conditions": {"flags": "-fstack-protector*"},
                "evidence": {
                    "name": "gcc.log",
                    "digest": {"sha256": SHA256},
                    "mediaType": "text/plain",
                },
            }
        ],
        "producer": {"uri": "https://example.com/builder", "name": "builder"},
    },
}


@pytest.fixture
def slsa_v1_statement() -> dict[str, Any]:
    """A valid in-toto statement holding a SLSA provenance v1 predicate."""
    return copy.deepcopy(SLSA_V1_STATEMENT)


@pytest.fixture
def slsa_v02_statement() -> dict[str, Any]:
    """A valid in-toto statement holding a SLSA provenance v0.2 predicate."""
    return copy.deepcopy(SLSA_V02_STATEMENT)


@pytest.fixture
def scai_statement() -> dict[str, Any]:
    """A valid in-toto statement holding a SCAI attribute report."""
    return copy.deepcopy(SCAI_STATEMENT)


@pytest.fixture
def write_json() -> Callable[[str, Any], str]:
    """Return a function dumping a document to a JSON file."""

    def write(filename: str, document: Any) -> str:
        with open(filename, "w") as f:
            json.dump(document, f, indent=2)
        return filename

    return write
