from __future__ import annotations

from datetime import date

import pytest

from codeinfra.changelog.models import ReleaseOptions


@pytest.fixture
def release_options() -> ReleaseOptions:
    """Release metadata shared by rendering tests."""
    return ReleaseOptions(
        version="1.2.0", last_release="v1.1.0", release="master", date=date(2024, 3, 5)
    )
