import pytest

from cancellation import CancelToken
from fake_driver import FakeDriver
from import_config import ImportConfig


@pytest.fixture
def source():
    return FakeDriver("source")


@pytest.fixture
def target():
    return FakeDriver("target")


@pytest.fixture
def token():
    return CancelToken()


@pytest.fixture
def config():
    return ImportConfig(skip_confirm=True, batch_size=100, parallel=2)
