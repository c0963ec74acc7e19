"""
Pytest configuration and fixtures.

Add any shared fixtures or pytest configuration here.
"""

import logging
import sys

import pytest

from patchscript import Session

from .fixtures.mock_server import MockGraphServer

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Set up logging
    log_level = logging.DEBUG if config.getoption("--debug-patchscript") else logging.INFO

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Set specific logger levels
    logging.getLogger("patchscript").setLevel(log_level)
    logging.getLogger("asyncio").setLevel(log_level)

    # If custom log file is specified, add file handler
    custom_log_file = config.getoption("--patchscript-log-file")
    if custom_log_file:
        file_handler = logging.FileHandler(custom_log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--debug-patchscript",
        action="store_true",
        default=False,
        help="Enable debug logging for patchscript (shows every graph operation)",
    )
    parser.addoption(
        "--patchscript-log-file",
        action="store",
        default=None,
        help="Log patchscript debug output to specified file",
    )


@pytest.fixture
def server():
    """In-process graph server that answers every request on the next loop iteration."""
    return MockGraphServer()


@pytest.fixture
def session(server):
    """Session wired to the in-process server."""
    s = Session(server)
    yield s
    s.runtime.shutdown()
