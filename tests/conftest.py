from __future__ import annotations

import pytest
from fakes import FakeCRMClient, FakeNotifier, FakePaymentGateway, make_settings

from app.core.config import Settings


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def crm() -> FakeCRMClient:
    return FakeCRMClient()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()
