import shutil
from pathlib import Path

import pytest

from backend import engine

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture(autouse=True)
def engine_data_dir():
    """Fresh data-tests/ and a fresh engine for every test.

    Importing backend.app points the engine at ./data (module-level app);
    re-initialising here keeps every test off the real data directory. The
    engine has no LLM connection, so a stray narration call fails fast.
    """
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    yield engine.init_engine(TEST_DATA_DIR)
    # data-tests/ is left behind for inspection
