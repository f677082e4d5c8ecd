import os
import pytest

from quotevault.ids import SequentialIdGenerator
from quotevault.library import Library
from quotevault.utils.ui_helpers import OUTPUT_MODE_ENV


@pytest.fixture
def db_file(tmp_path, request):
    # Each test gets its own database file
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def lib(db_file):
    lib = Library(db_file=db_file, id_generator=SequentialIdGenerator("id"))
    yield lib
    lib.close()
    if os.path.exists(db_file):
        os.remove(db_file)


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # set_output_mode writes to os.environ; keep tests from leaking modes into each other
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
