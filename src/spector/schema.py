"""JSON Schema generation for the spector document models.

Each model class describes its JSON shape with a tuple of :class:`Field`
descriptors stored in its ``SCHEMA_FIELDS`` class attribute. A model whose
shape cannot be described field by field (a mapping with constrained keys,
an arbitrary JSON value) defines a ``schema_definition()`` class method
returning its schema fragment instead.

:func:`generate_schema` turns such a model into a self-contained JSON Schema
document (draft 2020-12), nested models being stored under ``$defs``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import spector.log

if TYPE_CHECKING:
    from typing import Any, Optional, Sequence

logger = spector.log.getLogger("schema")

SCHEMA_DRAFT: str = "https://json-schema.org/draft/2020-12/schema"

# Schema "format" values understood by spector.validate.FORMAT_CHECKER
FORMAT_URI: str = "uri"
FORMAT_BYTE: str = "byte"
FORMAT_DATE_TIME: str = "date-time"

SCALAR_KINDS: dict[str, str] = {
    "string": "string",
    "boolean": "boolean",
    "integer": "integer",
    "number": "number",
    "object": "object",
}


class Field(object):
    """Descriptor of one field of a JSON object.

    :param name: the JSON name of the field
    :param kind: one of ``string``, ``uri``, ``bytes``, ``date-time``,
        ``boolean``, ``integer``, ``number``, ``object`` (free-form object),
        ``any`` (any JSON value), ``array``, ``map`` (object whose values
        are all described by *items*) or ``model`` (nested model class)
    :param required: whether the field is mandatory
    :param model: the model class for the ``model`` kind
    :param items: the descriptor of array elements or map values
    :param enum: the allowed values
    :param const: the only allowed value
    :param min_items: minimal length of an array
    :param description: free text documentation
    """

    KINDS: tuple = tuple(SCALAR_KINDS) + (
        "uri",
        "bytes",
        "date-time",
        "any",
        "array",
        "map",
        "model",
    )

    def __init__(
        self,
        name: str,
        kind: str = "string",
        required: bool = False,
        model: Any = None,
        items: Optional[Field] = None,
        enum: Optional[Sequence[str]] = None,
        const: Any = None,
        min_items: Optional[int] = None,
        description: Optional[str] = None,
    ) -> None:
        if kind not in self.KINDS:
            raise ValueError(f"Invalid field kind {kind!r} for field {name}")
        if kind == "model" and model is None:
            raise ValueError(f"Missing model for field {name}")
        if kind in ("array", "map") and items is None:
            raise ValueError(f"Missing items descriptor for field {name}")
        self.name = name
        self.kind = kind
        self.required = required
        self.model = model
        self.items = items
        self.enum = list(enum) if enum is not None else None
        self.const = const
        self.min_items = min_items
        self.description = description

    def __repr__(self) -> str:
        return f"Field({self.name!r}, {self.kind!r}, required={self.required})"

    def schema(self, defs: dict[str, Any]) -> dict[str, Any]:
        """Return the schema fragment describing this field's value.

        :param defs: the definitions of the schema being generated. Nested
            models are added to it.
        """
        result: dict[str, Any]
        if self.kind in SCALAR_KINDS:
            result = {"type": SCALAR_KINDS[self.kind]}
        elif self.kind == "uri":
            result = {"type": "string", "format": FORMAT_URI}
        elif self.kind == "bytes":
            result = {
                "type": "string",
                "format": FORMAT_BYTE,
                "contentEncoding": "base64",
            }
        elif self.kind == "date-time":
            result = {"type": "string", "format": FORMAT_DATE_TIME}
        elif self.kind == "any":
            result = {}
        elif self.kind == "array":
            assert self.items is not None
            result = {"type": "array", "items": self.items.schema(defs)}
            if self.min_items is not None:
                result["minItems"] = self.min_items
        elif self.kind == "map":
            assert self.items is not None
            result = {
                "type": "object",
                "additionalProperties": self.items.schema(defs),
            }
        else:
            result = {"$ref": f"#/$defs/{add_definition(self.model, defs)}"}

        if self.enum is not None:
            result["enum"] = self.enum
        if self.const is not None:
            result["const"] = self.const
        if self.description:
            result["description"] = self.description
        return result


def model_title(model: Any) -> str:
    """Return the schema title of a model class."""
    return getattr(model, "SCHEMA_TITLE", None) or model.__name__


def model_definition(
    model: Any,
    defs: dict[str, Any],
    overrides: Optional[dict[str, Field]] = None,
) -> dict[str, Any]:
    """Return the schema of an object model.

    :param model: the model class
    :param defs: the definitions of the schema being generated
    :param overrides: fields replacing the model's own descriptors, by name
    """
    if hasattr(model, "schema_definition"):
        return model.schema_definition()

    fields: Sequence[Field] = getattr(model, "SCHEMA_FIELDS", None)
    if fields is None:
        raise TypeError(f"{model!r} does not describe its JSON schema")

    if overrides:
        fields = [overrides.get(f.name, f) for f in fields]

    definition: dict[str, Any] = {"type": "object", "properties": {}}
    doc = (model.__doc__ or "").strip()
    if doc:
        definition["description"] = doc.splitlines()[0]
    for f in fields:
        definition["properties"][f.name] = f.schema(defs)
    required = [f.name for f in fields if f.required]
    if required:
        definition["required"] = required
    return definition


def add_definition(model: Any, defs: dict[str, Any]) -> str:
    """Add the definition of *model* to *defs* if not already there.

    :return: the name of the definition
    """
    title = model_title(model)
    if title not in defs:
        # Reserve the slot first so that recursive models terminate.
        defs[title] = {}
        defs[title] = model_definition(model, defs)
    return title


def generate_schema(
    model: Any,
    overrides: Optional[dict[str, Field]] = None,
    title: Optional[str] = None,
) -> dict[str, Any]:
    """Generate the JSON Schema document of a model class.

    :param model: the model class (see the module documentation)
    :param overrides: fields replacing the model's own descriptors, by name
    :param title: the schema title. Defaults to the model title.
    :return: a JSON Schema document
    """
    defs: dict[str, Any] = {}
    schema: dict[str, Any] = {
        "$schema": SCHEMA_DRAFT,
        "title": title or model_title(model),
    }
    schema.update(model_definition(model, defs, overrides))
    if defs:
        schema["$defs"] = {name: defs[name] for name in sorted(defs)}
    logger.debug(
        "generated schema %s (%d definitions)", schema["title"], len(defs)
    )
    return schema
