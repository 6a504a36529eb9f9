import logging
import os
import sys

import pytest

# Shared test material lives beside the tests
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
# Ensure the package is importable without installation
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from thumbprint_bundle.config import ENV_AUDIENCE, ENV_CLOCK_SKEW, ENV_ISSUER
from thumbprint_bundle.logging_config import run_id_var


# Environment overrides must not leak between tests
@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (ENV_ISSUER, ENV_AUDIENCE, ENV_CLOCK_SKEW):
        monkeypatch.delenv(name, raising=False)
    token = run_id_var.set('')
    yield
    run_id_var.reset(token)


# The CLI reconfigures the root logger; restore it after each test
@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
