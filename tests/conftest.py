import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def isolated_logging():
    """Give each test its own stderr sink so CLI runs cannot leave one behind."""
    logger.remove()
    _ = logger.add(sys.stderr, level="WARNING")
    yield
    logger.remove()
