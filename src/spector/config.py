"""Read spector config file."""
from __future__ import annotations
from dataclasses import fields, dataclass

from typing import TYPE_CHECKING, get_type_hints, ClassVar

import logging
import os

from tomlkit import parse
from tomlkit.exceptions import TOMLKitError
from typeguard import TypeCheckError, check_type

if TYPE_CHECKING:
    from typing import Type, TypeVar

    T = TypeVar("T", bound="ConfigSection")


def known_config_files() -> list[str]:
    """Return the configuration files to read, in loading order.

    ``$SPECTOR_CONFIG`` replaces the default locations when set.
    """
    if "SPECTOR_CONFIG" in os.environ:
        return [os.environ["SPECTOR_CONFIG"]]
    return [
        os.path.join(
            os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")),
            "spector.toml",
        ),
        os.path.expanduser("~/spector.toml"),
    ]


@dataclass
class ConfigSection:
    title: ClassVar[str]

    @classmethod
    def load(cls: Type[T]) -> T:
        """Load a section of the configuration file.

        To load a new section, subclass ConfigSection and document the
        fields that you expect to parse, e.g.::

            @dataclass
            class MyConfig(ConfigSection):
                title = "my_config_subsection"
                option : str = "default value"

        my_config = MyConfig.load()

        Values whose type does not match the field annotation are logged and
        ignored, the field keeping its default value.
        """
        schema = get_type_hints(cls)
        cls_fields = {f.name: schema[f.name] for f in fields(cls) if f.name != "title"}
        kwargs = {}

        for k, v in Config.load_section(cls.title).items():
            if k in cls_fields:
                ftype = cls_fields[k]
                # tomlkit items are str/int/bool/... subclasses: unwrap them
                value = v.unwrap() if hasattr(v, "unwrap") else v
                try:
                    check_type(value, ftype)
                except TypeCheckError as err:
                    logging.error(f"{cls.title}.{k}: {err}")
                else:
                    kwargs[k] = value

        return cls(**kwargs)  # type: ignore


class Config:
    """Load spector configuration file and validate each section.

    This class expose the .load_section(<section>) method that can be used
    by ConfigSection instance corresponding to the loaded configuration
    section after validation.
    """

    data: ClassVar[dict] = {}

    @classmethod
    def load_section(cls, section: str) -> dict:
        """Load a configuration section content.

        :param section: if contains "." nested subsection will be found. For
            instance "log.fmt" will return the section:

            [log]
              [log.fmt]
        :return: the configuration dict
        """
        if not cls.data:
            cls.load()

        subsections = section.split(".")
        result = cls.data
        for subsection in subsections:
            result = result.get(subsection, {})

        return result

    @classmethod
    def load_file(cls, filename: str) -> None:
        """Load a configuration file.

        Note that the known configuration files are automatically loaded the
        first time .load_section() is called.

        :param filename: configuration file to load
        """
        with open(filename) as f:
            try:
                cls.data.update(parse(f.read()))
            except TOMLKitError as e:
                logging.error(f"{filename}: {e}")

    @classmethod
    def load(cls) -> None:
        """Load the known configuration file(s)."""
        for config_file in known_config_files():
            if os.path.isfile(config_file):
                cls.load_file(config_file)


@dataclass
class ValidateConfig(ConfigSection):
    """Defaults of the validate command.

    :ivar mode: ``schema`` to report all the violations of a document,
        ``generic`` to stop on the first decoding error
    :ivar plugins: whether predicate plugins declared through the
        ``spector.predicate`` entry points are loaded
    """

    title: ClassVar[str] = "validate"

    mode: str = "schema"
    plugins: bool = True
