"""Per-user token balances.

The ledger is the accounting primitive only: it does not know what an
action costs. Callers (the orchestrator, via the mode table) pass the cost.
"""

import json
import logging

from .errors import CorruptRecordError, StorageWriteError
from .events import EventBus, Topic
from .models import UserTokens
from .storage.substrate import KeyValueSubstrate

logger = logging.getLogger(__name__)

INITIAL_TOKEN_LIMIT = 2000
LOW_BALANCE_THRESHOLD = 100
EXHAUSTED_THRESHOLD = 10


def token_key(user_id: str) -> str:
    return f"tokens_{user_id}"


def is_low(tokens: UserTokens) -> bool:
    """True when the balance is worth warning about."""
    return tokens.remaining < LOW_BALANCE_THRESHOLD


def is_exhausted(tokens: UserTokens) -> bool:
    """True when the balance no longer covers the cheapest action."""
    return tokens.remaining < EXHAUSTED_THRESHOLD


class QuotaLedger:
    """Reads, creates and updates token balances in a substrate.

    Balance changes are check-then-act against a single stored record, which
    is correct as long as there is one writer.

    A record that exists but cannot be parsed is never overwritten: it reads
    as a zero balance, so every deduction is refused until the record is
    repaired by hand.
    """

    def __init__(
        self,
        substrate: KeyValueSubstrate,
        bus: EventBus | None = None,
        initial_allowance: int = INITIAL_TOKEN_LIMIT,
    ) -> None:
        if initial_allowance < 0:
            raise ValueError("initial_allowance must not be negative")
        self.substrate = substrate
        self.bus = bus
        self.initial_allowance = initial_allowance

    def _read(self, user_id: str) -> UserTokens | None:
        """Stored balance, or None if there is no record.

        Raises:
            CorruptRecordError: If the record exists but does not parse.
        """
        key = token_key(user_id)
        raw = self.substrate.get_item(key)
        if raw is None:
            return None
        try:
            return UserTokens.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            raise CorruptRecordError(key, e) from e

    def _locked(self, user_id: str, error: CorruptRecordError) -> UserTokens:
        logger.error("Corrupt token record for %s, spending is blocked: %s", user_id, error)
        return UserTokens(total=0)

    def _write(self, user_id: str, tokens: UserTokens) -> None:
        key = token_key(user_id)
        try:
            self.substrate.set_item(key, json.dumps(tokens.to_dict()))
        except Exception as e:
            logger.error("Error saving %s: %s", key, e)
            raise StorageWriteError(key, e) from e
        if self.bus is not None:
            self.bus.publish(Topic.TOKENS)

    def peek(self, user_id: str) -> UserTokens | None:
        """Current balance without creating a record.

        Returns:
            None if the user has no record yet.
        """
        try:
            return self._read(user_id)
        except CorruptRecordError as e:
            return self._locked(user_id, e)

    def initialize(self, user_id: str) -> UserTokens:
        """Create the user's record with the starting allowance if missing.

        Returns:
            The existing record, or the newly created one.
        """
        try:
            tokens = self._read(user_id)
        except CorruptRecordError as e:
            return self._locked(user_id, e)
        if tokens is not None:
            return tokens

        tokens = UserTokens(total=self.initial_allowance)
        self._write(user_id, tokens)
        logger.info("Initialized %d tokens for %s", tokens.total, user_id)
        return tokens

    def get(self, user_id: str) -> UserTokens:
        """Current balance, creating the record on first access."""
        return self.initialize(user_id)

    def deduct(self, user_id: str, cost: int) -> bool:
        """Spend ``cost`` tokens.

        Returns:
            False, leaving the record untouched, if the balance does not
            cover the cost or the record is unreadable; True once the new
            balance is stored.
        """
        if cost < 0:
            raise ValueError("cost must not be negative")

        try:
            tokens = self._read(user_id)
        except CorruptRecordError as e:
            self._locked(user_id, e)
            return False
        if tokens is None:
            tokens = self.initialize(user_id)

        if tokens.remaining < cost:
            logger.info(
                "Refused deduction of %d for %s (remaining %d)",
                cost, user_id, tokens.remaining,
            )
            return False

        self._write(user_id, UserTokens(total=tokens.total, used=tokens.used + cost))
        return True

    def credit(self, user_id: str, amount: int) -> UserTokens:
        """Top up (or refund) ``amount`` tokens.

        Raises:
            CorruptRecordError: If the stored record cannot be parsed.
        """
        if amount < 0:
            raise ValueError("amount must not be negative")

        tokens = self._read(user_id)
        if tokens is None:
            tokens = self.initialize(user_id)
        updated = UserTokens(total=tokens.total + amount, used=tokens.used)
        self._write(user_id, updated)
        return updated
