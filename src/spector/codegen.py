"""Python code generation from JSON schemas.

:func:`generate_code` turns a JSON schema into the source of a Python module
declaring one :func:`~dataclasses.dataclass` per object definition (the
definitions found under ``$defs`` or ``definitions``, the root schema and the
inline object properties). Each class gets a ``from_dict`` class method and
an ``as_dict`` method converting from and to the JSON representation.

Only local references (``#/$defs/...`` and ``#/definitions/...``) are
resolved, any other reference is typed as ``Any``.
"""

from __future__ import annotations

import keyword
import re

from typing import TYPE_CHECKING

import spector.log
from spector.error import SchemaCompileError

if TYPE_CHECKING:
    from typing import Any, Optional

logger = spector.log.getLogger("codegen")

REF_PREFIXES: tuple[str, ...] = ("#/$defs/", "#/definitions/")

SCALAR_TYPES: dict[str, str] = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
}

INDENT = "    "


def class_name(title: str) -> str:
    """Return a CamelCase Python class name for a schema title."""
    words = [w for w in re.split(r"[^0-9A-Za-z]+", title) if w]
    name = "".join(w[0].upper() + w[1:] for w in words) or "Model"
    if name[0].isdigit():
        name = f"M{name}"
    return name


def field_name(json_name: str) -> str:
    """Return a snake_case Python attribute name for a JSON property name."""
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", json_name)
    name = re.sub(r"[^0-9A-Za-z_]+", "_", name).strip("_").lower() or "field"
    if name[0].isdigit():
        name = f"f_{name}"
    if keyword.iskeyword(name) or name in ("type", "id", "dict", "list"):
        name = f"{name}_"
    return name


class Converter(object):
    """Python type of a schema fragment and how to convert its values.

    :param annotation: the type annotation
    :param model: the generated class name when values are generated
        dataclass instances
    :param container: ``list`` or ``dict`` when values are containers of
        *model* instances
    """

    def __init__(
        self,
        annotation: str,
        model: Optional[str] = None,
        container: Optional[str] = None,
    ) -> None:
        self.annotation = annotation
        self.model = model
        self.container = container

    def decode(self, expr: str) -> str:
        """Return the expression decoding the JSON value *expr*."""
        if self.model is None:
            return expr
        if self.container == "list":
            return f"[{self.model}.from_dict(item) for item in {expr}]"
        if self.container == "dict":
            return f"{{k: {self.model}.from_dict(item) for k, item in {expr}.items()}}"
        return f"{self.model}.from_dict({expr})"

    def encode(self, expr: str) -> str:
        """Return the expression encoding the attribute value *expr*."""
        if self.model is None:
            return expr
        if self.container == "list":
            return f"[item.as_dict() for item in {expr}]"
        if self.container == "dict":
            return f"{{k: item.as_dict() for k, item in {expr}.items()}}"
        return f"{expr}.as_dict()"


class ClassSpec(object):
    """A dataclass to generate."""

    def __init__(self, name: str, description: Optional[str]) -> None:
        self.name = name
        # Rendered inside a triple-quoted docstring
        self.description = (
            description.replace("\\", "\\\\").replace('"', "'").strip()
            if description
            else None
        )
        # (python name, json name, converter, required)
        self.fields: list[tuple[str, str, Converter, bool]] = []

    def render(self) -> str:
        lines = ["@dataclass", f"class {self.name}:"]
        if self.description:
            lines.append(f'{INDENT}"""{self.description}"""')
            lines.append("")

        ordered = [f for f in self.fields if f[3]] + [f for f in self.fields if not f[3]]
        for py_name, _, conv, required in ordered:
            if required:
                lines.append(f"{INDENT}{py_name}: {conv.annotation}")
            else:
                lines.append(f"{INDENT}{py_name}: {conv.annotation} | None = None")
        if not ordered:
            lines.append(f"{INDENT}pass")

        lines += [
            "",
            f"{INDENT}@classmethod",
            f"{INDENT}def from_dict(cls, data: dict[str, Any]) -> {self.name}:",
        ]
        if ordered:
            lines.append(f"{INDENT * 2}return cls(")
            for py_name, json_name, conv, required in ordered:
                if required:
                    value = conv.decode(f"data[{json_name!r}]")
                else:
                    raw = f"data.get({json_name!r})"
                    value = (
                        raw
                        if conv.model is None
                        else f"None if {raw} is None else {conv.decode(raw)}"
                    )
                lines.append(f"{INDENT * 3}{py_name}={value},")
            lines.append(f"{INDENT * 2})")
        else:
            lines.append(f"{INDENT * 2}return cls()")

        lines += [
            "",
            f"{INDENT}def as_dict(self) -> dict[str, Any]:",
            f"{INDENT * 2}result: dict[str, Any] = {{}}",
        ]
        for py_name, json_name, conv, required in self.fields:
            attr = f"self.{py_name}"
            if required:
                lines.append(f"{INDENT * 2}result[{json_name!r}] = {conv.encode(attr)}")
            else:
                lines.append(f"{INDENT * 2}if {attr} is not None:")
                lines.append(f"{INDENT * 3}result[{json_name!r}] = {conv.encode(attr)}")
        lines.append(f"{INDENT * 2}return result")
        return "\n".join(lines)


class CodeGenerator(object):
    """Build the dataclasses of a JSON schema.

    :param schema: the JSON schema
    :raise SchemaCompileError: if *schema* is not a JSON object
    """

    def __init__(self, schema: Any) -> None:
        if not isinstance(schema, dict):
            raise SchemaCompileError(
                "invalid schema, expected an object", "generate_code"
            )
        self.schema = schema
        self.definitions: dict[str, Any] = {}
        for key in ("definitions", "$defs"):
            defs = schema.get(key, {})
            if isinstance(defs, dict):
                self.definitions.update(defs)
        self.classes: dict[str, ClassSpec] = {}
        self.def_classes: dict[str, str] = {}

    def resolve(self, ref: str) -> Optional[str]:
        """Return the definition name a local reference points to."""
        for prefix in REF_PREFIXES:
            if ref.startswith(prefix) and ref[len(prefix) :] in self.definitions:
                return ref[len(prefix) :]
        logger.warning("cannot resolve schema reference %s, typed as Any", ref)
        return None

    def converter(self, fragment: Any, context: str) -> Converter:
        """Return the converter of a schema fragment.

        :param fragment: the schema fragment
        :param context: name used for the classes of inline objects
        """
        if not isinstance(fragment, dict):
            return Converter("Any")

        if "$ref" in fragment:
            name = self.resolve(fragment["$ref"])
            if name is None:
                return Converter("Any")
            return self.definition_converter(name)

        if "const" in fragment:
            return Converter(self.value_type(fragment["const"]))
        if "enum" in fragment:
            types = sorted({self.value_type(v) for v in fragment["enum"]})
            return Converter(" | ".join(types) if types else "Any")

        for combinator in ("anyOf", "oneOf"):
            if combinator in fragment:
                options = [
                    self.converter(f, context).annotation for f in fragment[combinator]
                ]
                unique = list(dict.fromkeys(options))
                return Converter(" | ".join(unique) if "Any" not in unique else "Any")

        json_type = fragment.get("type")
        if isinstance(json_type, list):
            types = [
                self.converter(dict(fragment, type=t), context).annotation
                for t in json_type
            ]
            return Converter(" | ".join(dict.fromkeys(types)))
        if json_type in SCALAR_TYPES:
            return Converter(SCALAR_TYPES[json_type])
        if json_type == "array":
            item = self.converter(fragment.get("items", {}), f"{context}Item")
            return Converter(
                f"list[{item.annotation}]",
                item.model,
                "list" if item.model is not None else None,
            )
        if json_type == "object" or "properties" in fragment:
            if "properties" in fragment:
                name = self.add_class(class_name(context), fragment)
                return Converter(name, name)
            values = fragment.get("additionalProperties")
            if isinstance(values, dict) and values:
                item = self.converter(values, f"{context}Value")
                return Converter(
                    f"dict[str, {item.annotation}]",
                    item.model,
                    "dict" if item.model is not None else None,
                )
            return Converter("dict[str, Any]")
        return Converter("Any")

    @staticmethod
    def value_type(value: Any) -> str:
        if isinstance(value, bool):
            return "bool"
        for python_type, name in ((str, "str"), (int, "int"), (float, "float")):
            if isinstance(value, python_type):
                return name
        return "Any"

    def definition_converter(self, name: str) -> Converter:
        """Return the converter of a named definition."""
        if name in self.def_classes:
            cls = self.def_classes[name]
            return Converter(cls, cls)
        fragment = self.definitions[name]
        if isinstance(fragment, dict) and "properties" in fragment:
            cls = class_name(fragment.get("title") or name)
            self.def_classes[name] = cls
            self.add_class(cls, fragment)
            return Converter(cls, cls)
        return self.converter(fragment, name)

    def add_class(self, name: str, fragment: dict[str, Any]) -> str:
        """Add the dataclass of an object schema.

        :return: the class name, suffixed if *name* is already taken
        """
        if name in self.classes:
            index = 2
            while f"{name}{index}" in self.classes:
                index += 1
            name = f"{name}{index}"

        description = fragment.get("description")
        spec = ClassSpec(name, description.splitlines()[0] if description else None)
        self.classes[name] = spec

        required = set(fragment.get("required", []))
        used: set[str] = set()
        for json_name, prop in fragment.get("properties", {}).items():
            py_name = field_name(json_name)
            while py_name in used:
                py_name = f"{py_name}_"
            used.add(py_name)
            conv = self.converter(prop, f"{name} {json_name}")
            spec.fields.append((py_name, json_name, conv, json_name in required))
        return name

    def generate(self) -> str:
        """Return the source code of the module."""
        for name in self.definitions:
            self.definition_converter(name)
        title = self.schema.get("title") or "Root"
        if "properties" in self.schema:
            self.add_class(class_name(title), self.schema)

        header = [
            f'"""Data classes generated from the {title} JSON schema."""',
            "",
            "from __future__ import annotations",
            "",
            "from dataclasses import dataclass",
            "from typing import Any",
        ]
        body = [spec.render() for spec in self.classes.values()]
        logger.debug("generated %d class(es) for schema %s", len(body), title)
        return "\n".join(header) + "\n\n\n" + "\n\n\n".join(body) + "\n"


def generate_code(schema: Any) -> str:
    """Generate the Python dataclasses of a JSON schema.

    :param schema: the JSON schema
    :return: the source code of a Python module
    :raise SchemaCompileError: if *schema* is not a JSON object
    """
    return CodeGenerator(schema).generate()
