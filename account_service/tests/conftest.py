from __future__ import annotations

import pytest

from account_service.tests.fakes import AccountServiceFixture, build_fixture


@pytest.fixture
def fixture() -> AccountServiceFixture:
    return build_fixture()
