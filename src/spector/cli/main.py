from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import stevedore

import spector.log
from spector.cli.action import ACTION_NAMESPACE, BUILTIN_ACTIONS
from spector.error import SpectorError
from spector.main import Main

if TYPE_CHECKING:
    from typing import Any, Optional

    from spector.cli.action import SpectorAction

logger = spector.log.getLogger("cli.main")


def main(argv: Optional[list[str]] = None) -> int:
    """Validate supply chain metadata documents.

    This function creates the main code for the entry-point spector. To
    create new actions it is possible to create new spector plugins. e.g. to
    add a new plugin ``foo`` from a package ``spector-contrib``, derives the
    class py:class:`SpectorAction` and register the extension by adding in
    py:file:`spector-contrib/setup.py`::

        entry_points={
            'spector.action': [
                'foo = spector_contrib.actions:SpectorFoo']
        }

    :param argv: the command line arguments, ``sys.argv[1:]`` if None
    :return: the process exit status
    """
    m = Main(
        name="spector",
        description="A tool for validating supply chain metadata documents",
    )

    subparsers = m.argument_parser.add_subparsers(
        title="action", description="valid actions", dest="action", required=True
    )

    actions: dict[str, SpectorAction] = {}
    for action_class in BUILTIN_ACTIONS:
        action = action_class(subparsers)
        actions[action.name] = action

    def on_load_failure(
        manager: stevedore.ExtensionManager, entrypoint: Any, err: Exception
    ) -> None:
        logger.error("cannot load action plugin %s: %s", entrypoint, err)

    # Load the actions contributed by other packages
    ext = stevedore.ExtensionManager(
        namespace=ACTION_NAMESPACE,
        invoke_on_load=False,
        on_load_failure_callback=on_load_failure,
    )
    for extension in ext:
        name = getattr(extension.plugin, "name", extension.name)
        if name in actions:
            logger.warning("action plugin %s ignored: %s already exists", name, name)
            continue
        actions[name] = extension.plugin(subparsers)

    m.parse_args(argv)
    assert m.args is not None

    spector.log.debug("spector actions loaded: %s", ",".join(sorted(actions)))

    # An action has been selected, run it
    try:
        return actions[m.args.action].run(m.args)
    except SpectorError as err:
        logger.debug("action %s failed", m.args.action)
        print(err, file=sys.stderr)
        return 1
