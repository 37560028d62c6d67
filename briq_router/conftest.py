import sys

import pytest
from loguru import logger

pytest_plugins = ["briq_router.testing.world"]


def pytest_configure(config):
    config.addinivalue_line("markers", "smoke: mark test as a smoke test")
    config.addinivalue_line("markers", "integration: mark test as integration")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "smoke" in item.nodeid:
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(autouse=True)
def _restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")
