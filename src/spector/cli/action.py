"""Actions of the spector command line.

Each action is a :class:`SpectorAction` subclass adding its own sub-parser
to the ``spector`` argument parser. Other packages can contribute actions
through the ``spector.action`` entry points::

    entry_points={
        'spector.action': [
            'foo = spector_contrib.actions:SpectorFoo']
    }
"""

from __future__ import annotations

import abc
import json
import sys

from typing import TYPE_CHECKING

import spector.log
from spector.codegen import generate_code
from spector.config import ValidateConfig
from spector.error import (
    DecodeError,
    ParseError,
    PredicateTypeError,
    SchemaCompileError,
    SchemaError,
    SpectorError,
    ValidationError,
)
from spector.intoto.predicate import default_registry
from spector.intoto.statement import Statement
from spector.schema import model_title
from spector.validate import MODES, MODE_SCHEMA, JSONSchemaValidator, statement_validator
from spector.yaml import load_document

if TYPE_CHECKING:
    from argparse import ArgumentParser, Namespace
    from typing import Any, Optional

    from spector.intoto.predicate import Predicate, PredicateRegistry

logger = spector.log.getLogger("cli")

ACTION_NAMESPACE = "spector.action"

DOCUMENT_IN_TOTO_V1 = "in-toto-v1"
DOCUMENT_JSON_SCHEMA = "json-schema"


def error(msg: str) -> None:
    """Report an error on the standard error."""
    print(msg, file=sys.stderr)


def pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True)


class SpectorAction(object, metaclass=abc.ABCMeta):
    """A spector command.

    :param subparsers: the sub-parsers of the spector argument parser
    """

    def __init__(self, subparsers: Any) -> None:
        self.parser: ArgumentParser = subparsers.add_parser(self.name, help=self.help)
        self.parser.set_defaults(action=self.name)
        self.documents: Any = None
        self.add_parsers()

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Return the action name."""
        pass  # all: no cover

    @property
    @abc.abstractmethod
    def help(self) -> str:
        """Return the help string associated with this action."""
        pass  # all: no cover

    @abc.abstractmethod
    def add_parsers(self) -> None:
        """Add new command line argument parsers."""
        pass  # all: no cover

    @abc.abstractmethod
    def run(self, args: Namespace) -> int:
        """Run the action.

        :param args: command line arguments gotten with argparse.
        :return: the process exit status
        """
        pass  # all: no cover

    def add_document_parser(self, document: str, help: str) -> ArgumentParser:
        """Add the sub-parser of a document kind handled by this action."""
        if self.documents is None:
            self.documents = self.parser.add_subparsers(
                title="document", dest="document", required=True
            )
        return self.documents.add_parser(document, help=help)

    @staticmethod
    def registry(config: ValidateConfig) -> PredicateRegistry:
        return default_registry(plugins=config.plugins)

    @staticmethod
    def predicate_class(
        registry: PredicateRegistry, name: Optional[str]
    ) -> Optional[type[Predicate]]:
        """Return the predicate class selected by ``--predicate``.

        :raise SpectorError: if *name* is not a known predicate
        """
        if name is None:
            return None
        try:
            return registry.lookup(name)
        except KeyError as err:
            raise SpectorError(err.args[0], "predicate") from None


class SpectorValidate(SpectorAction):

    name = "validate"
    help = "Validate documents"

    def add_parsers(self) -> None:
        in_toto = self.add_document_parser(
            DOCUMENT_IN_TOTO_V1, help="Validate in-toto v1 attestation statements"
        )
        in_toto.add_argument(
            "--file",
            "-f",
            nargs="+",
            required=True,
            help="the JSON or YAML documents to validate",
        )
        in_toto.add_argument(
            "--predicate",
            help="only accept statements holding this predicate (short name or"
            " type URI, e.g. slsa-provenance-v1)",
        )
        in_toto.add_argument(
            "--mode",
            choices=MODES,
            default=None,
            help="schema: report all the schema violations, generic: stop on"
            " the first decoding error (default from the [validate] section"
            " of the configuration, or schema)",
        )

        json_schema = self.add_document_parser(
            DOCUMENT_JSON_SCHEMA, help="Validate documents against a JSON schema"
        )
        json_schema.add_argument(
            "--schema", "-s", required=True, help="the JSON or YAML schema file"
        )
        json_schema.add_argument(
            "--file",
            "-f",
            nargs="+",
            required=True,
            help="the JSON or YAML documents to validate",
        )

    def run(self, args: Namespace) -> int:
        if args.document == DOCUMENT_JSON_SCHEMA:
            return self.run_json_schema(args)
        return self.run_in_toto(args)

    def run_in_toto(self, args: Namespace) -> int:
        config = ValidateConfig.load()
        mode = args.mode or config.mode
        if mode not in MODES:
            logger.error(
                "invalid validate.mode %s in configuration, use %s", mode, MODE_SCHEMA
            )
            mode = MODE_SCHEMA

        registry = self.registry(config)
        predicate = self.predicate_class(registry, args.predicate)
        validator = statement_validator(mode, predicate, registry)
        expected_type = predicate.PREDICATE_TYPE if predicate is not None else None

        status = 0
        for filename in spector.log.progress_bar(
            args.file, desc="validate", unit="file", leave=False
        ):
            logger.debug("validate %s in %s mode", filename, mode, document=filename)
            try:
                document = load_document(filename)
                if (
                    expected_type
                    and isinstance(document, dict)
                    and isinstance(document.get(Statement.ATTR_PREDICATE_TYPE), str)
                    and document[Statement.ATTR_PREDICATE_TYPE] != expected_type
                ):
                    raise PredicateTypeError(
                        "Unexpected predicateType: "
                        f"{json.dumps(document[Statement.ATTR_PREDICATE_TYPE])}",
                        path=[Statement.ATTR_PREDICATE_TYPE],
                    )
                statement = validator.validate(document)
            except PredicateTypeError as err:
                error(err.messages[-1])
                status = 1
            except ValidationError as err:
                error(f"{filename}: {err}")
                status = 1
            except (SchemaError, DecodeError) as err:
                error(f"Error parsing JSON: {err.messages[-1]} (at {err.pointer})")
                status = 1
            except ParseError as err:
                error(f"Error parsing JSON: {err}")
                status = 1
            else:
                print(
                    "Valid InTotoV1 "
                    f"{model_title(type(statement.predicate))} document"
                )
                print(f"Document: {pretty_json(statement.as_dict())}")
        return status

    def run_json_schema(self, args: Namespace) -> int:
        try:
            schema = load_document(args.schema)
            validator = JSONSchemaValidator(schema)
        except (ParseError, SchemaCompileError) as err:
            error(str(err))
            return 1

        status = 0
        for filename in spector.log.progress_bar(
            args.file, desc="validate", unit="file", leave=False
        ):
            try:
                validator.validate(load_document(filename))
            except ParseError as err:
                error(f"Error parsing JSON: {err}")
                status = 1
            except ValidationError as err:
                error(f"{filename}: {err}")
                status = 1
            else:
                print(f"Valid document {filename}")
        return status


class SpectorSchemaGenerate(SpectorAction):

    name = "schema-generate"
    help = "Print the JSON schema of a document kind"

    def add_parsers(self) -> None:
        in_toto = self.add_document_parser(
            DOCUMENT_IN_TOTO_V1, help="JSON schema of in-toto v1 statements"
        )
        in_toto.add_argument(
            "--predicate",
            help="bind the statement predicate to this predicate (short name"
            " or type URI)",
        )

    def run(self, args: Namespace) -> int:
        registry = self.registry(ValidateConfig.load())
        predicate = self.predicate_class(registry, args.predicate)
        print(pretty_json(Statement.json_schema(predicate)))
        return 0


class SpectorCodeGenerate(SpectorAction):

    name = "code-generate"
    help = "Generate Python data classes from a schema"

    def add_parsers(self) -> None:
        json_schema = self.add_document_parser(
            DOCUMENT_JSON_SCHEMA, help="Python data classes of a JSON schema"
        )
        json_schema.add_argument(
            "--file", "-f", required=True, help="the JSON or YAML schema file"
        )

    def run(self, args: Namespace) -> int:
        try:
            code = generate_code(load_document(args.file))
        except (ParseError, SchemaCompileError) as err:
            error(str(err))
            return 1
        sys.stdout.write(code)
        return 0


BUILTIN_ACTIONS: tuple[type[SpectorAction], ...] = (
    SpectorValidate,
    SpectorSchemaGenerate,
    SpectorCodeGenerate,
)
