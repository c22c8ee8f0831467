from datetime import datetime

import pytest


@pytest.fixture
def fixed_now():
    # Wednesday
    return datetime(2025, 3, 12, 9, 0, 0)
