"""Tests for UsageMonitor."""

import asyncio

import pytest

from secrecy.auth import AuthState
from secrecy.events import EventBus, Topic
from secrecy.ledger import QuotaLedger, token_key
from secrecy.storage import MemorySubstrate
from secrecy.usage import UsageMonitor


def test_interval_must_be_positive(ledger: QuotaLedger, auth: AuthState):
    with pytest.raises(ValueError):
        UsageMonitor(ledger, auth, lambda tokens: None, interval=0)


def test_refresh_signed_out(ledger: QuotaLedger, auth: AuthState):
    updates = []
    monitor = UsageMonitor(ledger, auth, updates.append)

    assert monitor.refresh() is None
    assert updates == []


def test_refresh_reports_balance(ledger: QuotaLedger, auth: AuthState):
    updates = []
    auth.sign_in("alice")
    ledger.deduct("alice", 15)
    monitor = UsageMonitor(ledger, auth, updates.append)

    tokens = monitor.refresh()

    assert tokens.remaining == 1985
    assert updates == [tokens]


@pytest.mark.asyncio
async def test_polls_until_stopped(ledger: QuotaLedger, auth: AuthState):
    updates = []
    auth.sign_in("alice")
    ledger.initialize("alice")
    monitor = UsageMonitor(ledger, auth, updates.append, interval=0.01)

    monitor.start()
    monitor.start()
    await asyncio.sleep(0.05)
    await monitor.stop()

    assert monitor.running is False
    count = len(updates)
    assert count >= 2
    await asyncio.sleep(0.03)
    assert len(updates) == count


@pytest.mark.asyncio
async def test_failing_callback_keeps_polling(ledger: QuotaLedger, auth: AuthState):
    calls = []

    def flaky(tokens):
        calls.append(tokens)
        if len(calls) == 1:
            raise RuntimeError("render failed")

    auth.sign_in("alice")
    ledger.initialize("alice")
    monitor = UsageMonitor(ledger, auth, flaky, interval=0.01)

    monitor.start()
    await asyncio.sleep(0.05)
    await monitor.stop()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_stop_without_start(ledger: QuotaLedger, auth: AuthState):
    monitor = UsageMonitor(ledger, auth, lambda tokens: None)
    await monitor.stop()
    assert monitor.running is False


def test_refresh_does_not_create_record(
    substrate: MemorySubstrate, ledger: QuotaLedger, auth: AuthState, bus: EventBus
):
    updates = []
    published = []
    bus.subscribe(Topic.TOKENS, lambda: published.append(1))
    auth.sign_in("alice")
    monitor = UsageMonitor(ledger, auth, updates.append)

    assert monitor.refresh() is None
    assert updates == []
    assert published == []
    assert substrate.get_item(token_key("alice")) is None
