import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_snowproxy_log_handler():
    """Drop the root-logger handler installed by configure_logging after each test.

    CliRunner swaps sys.stderr per invocation and closes it afterwards, so a
    handler left over from a previous test would point at a closed stream.
    """
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_snowproxy_handler", False):
            root.removeHandler(handler)
