import pytest

from tests.helpers import FakeClient, FakeEventSource


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def source():
    return FakeEventSource()
