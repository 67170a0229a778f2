from __future__ import annotations

import pytest

from fakes import FakeGateway
from news_pulse.session import SessionContext


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def session():
    return SessionContext()


@pytest.fixture
def signed_in(session):
    session.sign_in("a@x.com")
    return session
