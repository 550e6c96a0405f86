"""in-toto predicates and the registry of known predicate types.

A statement's ``predicate`` is decoded according to its ``predicateType``:
the :class:`PredicateRegistry` maps each known type URI to a
:class:`Predicate` subclass, and any other type URI gives an
:class:`OtherPredicate` holding the payload as is.

New predicate types are added by registering their class, either directly::

    registry.register(MyPredicate)

or from another distribution, through the ``spector.predicate`` entry points
namespace (see :meth:`PredicateRegistry.load_plugins`)::

    entry_points={
        'spector.predicate': [
            'my-predicate = my_package.predicate:MyPredicate']
    }

.. |Predicate| replace:: :class:`Predicate`
.. |OtherPredicate| replace:: :class:`OtherPredicate`
"""  # noqa RST304

from __future__ import annotations

import copy

from abc import abstractmethod
from functools import lru_cache
from typing import TYPE_CHECKING

import stevedore

import spector.log
from spector.json import JsonData
from spector.url import TypeURI, decode_url

if TYPE_CHECKING:
    from typing import Any, Iterator, Optional

logger = spector.log.getLogger("intoto.predicate")

PREDICATE_NAMESPACE: str = "spector.predicate"


class Predicate(JsonData):
    """Base class of the predicates known by spector.

    Subclasses define:

    - :attr:`PREDICATE_TYPE`, the type URI under which they are registered,
    - :attr:`NAME`, the short name used on the command line,
    - :meth:`load_dict`, decoding the JSON payload and raising
      :class:`~spector.error.DecodeError` when it does not have the awaited
      structure,
    - :attr:`SCHEMA_FIELDS` (see :mod:`spector.schema`).
    """  # noqa RST304

    PREDICATE_TYPE: str = ""
    NAME: str = ""

    @property
    def predicate_type(self) -> Optional[TypeURI]:
        """The type URI this predicate class is registered under."""
        if not self.PREDICATE_TYPE:
            return None
        return TypeURI(self.PREDICATE_TYPE)

    @abstractmethod
    def as_dict(self) -> Any:
        """Return the JSON representation of this predicate."""
        ...


class OtherPredicate(Predicate):
    """A predicate whose type is not known by the registry.

    The payload is kept unmodified: it can be any JSON value.

    :param value: the decoded JSON payload
    """

    NAME = "other"

    def __init__(self, value: Any) -> None:
        self.__value = copy.deepcopy(value)

    def __repr__(self) -> str:
        return f"OtherPredicate({self.__value!r})"

    @property
    def value(self) -> Any:
        """The raw JSON payload."""
        return copy.deepcopy(self.__value)

    def as_dict(self) -> Any:
        return copy.deepcopy(self.__value)

    @classmethod
    def load_dict(cls, initializer: Any) -> OtherPredicate:
        """Wrap any JSON value, this never fails."""
        return cls(initializer)

    @classmethod
    def schema_definition(cls) -> dict[str, Any]:
        return {"description": "Predicate of an unknown type (any JSON value)"}


class PredicateRegistry(object):
    """Map of predicate type URIs to predicate classes.

    Dispatching an unregistered type URI falls back to |OtherPredicate|.
    """  # noqa RST304

    def __init__(self) -> None:
        self.__classes: dict[str, type[Predicate]] = {}
        self.__names: dict[str, str] = {}

    def __contains__(self, key: object) -> bool:
        """Check whether a type URI, or a short name, is registered."""
        if isinstance(key, TypeURI):
            key = key.uri
        return key in self.__classes or key in self.__names

    def __iter__(self) -> Iterator[type[Predicate]]:
        return iter(self.__classes.values())

    def __len__(self) -> int:
        return len(self.__classes)

    def register(
        self,
        predicate_class: type[Predicate],
        type_uri: Optional[str] = None,
        name: Optional[str] = None,
        replace: bool = False,
    ) -> None:
        """Register a predicate class.

        :param predicate_class: the class decoding payloads of this type
        :param type_uri: the predicate type URI. Defaults to the class'
            ``PREDICATE_TYPE``
        :param name: the short name of this type. Defaults to the class'
            ``NAME``
        :param replace: replace an existing registration instead of failing
        :raise FormatError: if *type_uri* is not an absolute URI
        :raise ValueError: if *type_uri* or *name* are already registered and
            *replace* is False
        """
        uri = decode_url(type_uri or predicate_class.PREDICATE_TYPE).uri
        name = name or predicate_class.NAME or uri

        if not replace:
            if uri in self.__classes:
                raise ValueError(
                    f"predicate type {uri} already registered"
                    f" ({self.__classes[uri].__name__})"
                )
            if name in self.__names:
                raise ValueError(f"predicate name {name} already registered")

        previous = self.__classes.get(uri)
        if previous is not None:
            self.__names = {k: v for k, v in self.__names.items() if v != uri}
        self.__classes[uri] = predicate_class
        self.__names[name] = uri
        logger.debug("register predicate %s (%s): %s", name, uri, predicate_class)

    def dispatch(self, type_uri: TypeURI | str, raw: Any) -> Predicate:
        """Decode a predicate payload according to its type URI.

        :param type_uri: the statement's ``predicateType``
        :param raw: the JSON payload
        :return: an instance of the registered class, or an |OtherPredicate|
            if *type_uri* is unknown
        :raise DecodeError: if the payload does not match the structure of a
            registered type. Such errors are never turned into a fallback.
        """  # noqa RST304
        uri = type_uri.uri if isinstance(type_uri, TypeURI) else type_uri
        predicate_class = self.__classes.get(uri)
        if predicate_class is None:
            logger.debug("unknown predicate type %s, keep raw payload", uri)
            return OtherPredicate.load_dict(raw)
        logger.debug("decode predicate %s as %s", uri, predicate_class.__name__)
        return predicate_class.load_dict(raw)

    def lookup(self, key: str) -> type[Predicate]:
        """Return the class registered for a short name or a type URI.

        :raise KeyError: if *key* is not registered
        """
        uri = self.__names.get(key, key)
        try:
            return self.__classes[uri]
        except KeyError:
            raise KeyError(
                f"unknown predicate {key} (known: {', '.join(self.names())})"
            ) from None

    def type_uri(self, key: str) -> str:
        """Return the type URI registered for a short name or a type URI.

        :raise KeyError: if *key* is not registered
        """
        self.lookup(key)
        return self.__names.get(key, key)

    def names(self) -> list[str]:
        """Return the sorted short names of the registered types."""
        return sorted(self.__names)

    def type_uris(self) -> list[str]:
        """Return the sorted registered type URIs."""
        return sorted(self.__classes)

    def load_plugins(self, namespace: str = PREDICATE_NAMESPACE) -> list[str]:
        """Register the predicate classes declared as entry points.

        Each entry point of *namespace* must reference a |Predicate|
        subclass. Plugins failing to load are reported and skipped.

        :return: the names of the loaded entry points
        """  # noqa RST304

        def on_load_failure(
            manager: stevedore.ExtensionManager, entrypoint: Any, err: Exception
        ) -> None:
            logger.error("cannot load predicate plugin %s: %s", entrypoint, err)

        ext = stevedore.ExtensionManager(
            namespace=namespace,
            invoke_on_load=False,
            on_load_failure_callback=on_load_failure,
        )
        loaded = []
        for extension in ext:
            plugin = extension.plugin
            if not (isinstance(plugin, type) and issubclass(plugin, Predicate)):
                logger.error(
                    "predicate plugin %s is not a Predicate subclass", extension.name
                )
                continue
            self.register(plugin, name=plugin.NAME or extension.name, replace=True)
            loaded.append(extension.name)

        if loaded:
            logger.debug("loaded predicate plugins %s", ",".join(loaded))
        return loaded


def builtin_registry() -> PredicateRegistry:
    """Return a new registry holding the predicate types known by spector."""
    from spector.intoto.scai import SCAIPredicate
    from spector.slsa.provenance import ProvenanceV1
    from spector.slsa.provenance_v02 import ProvenanceV02

    registry = PredicateRegistry()
    for predicate_class in (ProvenanceV1, ProvenanceV02, SCAIPredicate):
        registry.register(predicate_class)
    return registry


@lru_cache(maxsize=None)
def default_registry(plugins: bool = True) -> PredicateRegistry:
    """Return the process-wide predicate registry.

    :param plugins: also register the predicate plugins (see
        :meth:`PredicateRegistry.load_plugins`)
    """
    registry = builtin_registry()
    if plugins:
        registry.load_plugins()
    return registry
