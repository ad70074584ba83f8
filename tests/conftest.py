import pytest

from tests.helpers import grid_payload


@pytest.fixture
def sample_payload():
    return grid_payload()
