"""Fixtures for the scan pipeline tests (no database needed)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from scan_fakes import InMemoryScanDAO

from scansentinel.services.scan_service import ScanService


@pytest.fixture
def session_factory():
    """async_sessionmaker stand-in: every call yields the same mock session."""
    session = AsyncMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.begin = MagicMock(return_value=session)
    return MagicMock(return_value=session)


@pytest.fixture
def scan_dao():
    return InMemoryScanDAO()


@pytest.fixture
def scan_service(scan_dao):
    return ScanService(scan_dao)
