import logging

import pytest

from kmfgen.reporting import SilentReporter, set_reporter, set_verbosity


@pytest.fixture(autouse=True)
def _quiet_reporting():
    # CLI tests reconfigure the global reporter and the "kmfgen" logger
    logger = logging.getLogger("kmfgen")
    saved = (list(logger.handlers), logger.propagate, logger.level)
    set_reporter(SilentReporter())
    set_verbosity(0)
    yield
    logger.handlers[:] = saved[0]
    logger.propagate = saved[1]
    logger.setLevel(saved[2])
