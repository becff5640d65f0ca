"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock

import pytest

from src.config.settings import Settings
from src.services.builder import GuidedBuilder


@pytest.fixture
def settings():
    """Provide settings fixture."""
    return Settings(
        warehouse_connection_string="DSN=warehouse",
        database_connection_string="DSN=appdb",
        auto_run_on_open=False,
    )


@pytest.fixture
def executor():
    """SQL execution collaborator; tests set ``execute`` results per case."""
    mock = AsyncMock()
    mock.execute = AsyncMock()
    return mock


@pytest.fixture
def reports():
    mock = AsyncMock()
    mock.save_report = AsyncMock(side_effect=lambda request: request.id)
    return mock


@pytest.fixture
def statements():
    mock = AsyncMock()
    mock.get_statement = AsyncMock(return_value=None)
    mock.mark_used = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def builder(settings, executor, reports, statements):
    return GuidedBuilder(settings, executor=executor, reports=reports, statements=statements)
