import pytest

from fakes import FIXED_NOW
from transcode_worker.domain import StagingArea


@pytest.fixture
def staging(tmp_path):
    area = StagingArea(tmp_path)
    area.prepare()
    return area


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
