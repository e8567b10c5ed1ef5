"""Shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from secrecy.auth import AuthState
from secrecy.events import EventBus
from secrecy.ledger import QuotaLedger
from secrecy.logging import JSONLLogger
from secrecy.storage import ChatStore, MemorySubstrate


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def substrate() -> MemorySubstrate:
    return MemorySubstrate()


@pytest.fixture
def store(substrate: MemorySubstrate, bus: EventBus) -> ChatStore:
    return ChatStore(substrate, bus)


@pytest.fixture
def ledger(substrate: MemorySubstrate, bus: EventBus) -> QuotaLedger:
    return QuotaLedger(substrate, bus)


@pytest.fixture
def auth(bus: EventBus) -> AuthState:
    return AuthState(bus)


@pytest.fixture
def event_logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path / "logs")


@pytest.fixture
def provider() -> MagicMock:
    """Completion provider that always answers "Hello from AI"."""
    mock = MagicMock()
    mock.complete = AsyncMock(return_value="Hello from AI")
    return mock
