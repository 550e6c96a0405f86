"""YAML input for spector documents and schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml

import spector.log
from spector.error import ParseError
from spector.json import parse_json

try:
    from yaml import CSafeLoader as SafeLoader
except ImportError:  # defensive code
    from yaml import SafeLoader  # type: ignore

if TYPE_CHECKING:
    from typing import Any

logger = spector.log.getLogger("yaml")

# Extensions identifying YAML files, other files are read as JSON
YAML_EXTENSIONS: tuple[str, ...] = (".yaml", ".yml")


class YamlError(ParseError):
    pass


def parse_yaml(content: str | bytes) -> Any:
    """Parse a YAML text.

    Only standard YAML tags are accepted (safe loading).

    :param content: the YAML text
    :return: the decoded tree
    :raise YamlError: if *content* is not well-formed YAML
    """
    try:
        return yaml.load(content, SafeLoader)
    except yaml.YAMLError as err:
        raise YamlError(f"Invalid YAML: {err}") from err


def is_yaml_file(filename: str) -> bool:
    """Return True if *filename* has a YAML file extension."""
    return filename.lower().endswith(YAML_EXTENSIONS)


def load_document(filename: str) -> Any:
    """Load a JSON or YAML document from a file.

    The file is read as YAML if its extension is ``.yaml`` or ``.yml``, as
    JSON otherwise.

    :param filename: path to the document
    :return: the decoded tree
    :raise ParseError: if the file cannot be read or is not well-formed
    """
    try:
        with open(filename, "rb") as f:
            content = f.read()
    except OSError as err:
        raise ParseError(f"cannot read {filename}: {err.strerror}", "load_document")

    if is_yaml_file(filename):
        logger.debug("load %s as YAML", filename, document=filename)
        return parse_yaml(content)
    logger.debug("load %s as JSON", filename, document=filename)
    return parse_json(content)
