from __future__ import annotations

from datetime import datetime

import pytest

from radiocast.app_factory import create_app
from radiocast.repositories.memory_storage import MemoryStorage
from radiocast.tests.fakes import NOW, FakeAnimator, FakeChat, make_fetcher_set, make_settings


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def app(storage, chat):
    app = create_app(
        make_settings(),
        storage=storage,
        llm=chat,
        fetchers=make_fetcher_set(),
        animation=FakeAnimator(),
        clock=lambda: NOW,
    )
    app.config["TESTING"] = True
    return app


@pytest.fixture
def test_client(app):
    return app.test_client()
