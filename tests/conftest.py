# type: ignore
import logging
import os

import pytest

import spector.log
from spector.config import Config
from spector.intoto.predicate import default_registry


def init_testsuite_env():
    """Initialize testsuite environment."""
    # Activate full debug logs
    spector.log.activate(level=logging.DEBUG, spector_debug=True)

    # Force UTC timezone
    os.environ["TZ"] = "UTC"
    # Ignore the user configuration
    os.environ["SPECTOR_CONFIG"] = "/dev/null"
    if "SPECTOR_ENABLE_FEATURE" in os.environ:
        del os.environ["SPECTOR_ENABLE_FEATURE"]


init_testsuite_env()


@pytest.fixture(autouse=True)
def env_protect(tmp_path, monkeypatch):
    """Run each test in its own directory.

    The log handlers added by the test (e.g. by the command line) are removed
    and the configuration and predicate registry caches are reset.
    """
    monkeypatch.chdir(tmp_path)
    handlers = list(logging.getLogger("").handlers)
    yield
    root = logging.getLogger("")
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    Config.data.clear()
    default_registry.cache_clear()
