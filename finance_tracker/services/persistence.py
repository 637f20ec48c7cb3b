"""
Persistence Facade

Maps a MonthLedger onto flat keys in a key-value store.

Key layout (per user):
    months                   -> [MonthData, ...]
    userProfile              -> UserProfile
    <entity>_<YYYY-MM>       -> [entity, ...]   for incomes, expenses,
                                budgets, goals, debts, recommendations,
                                alerts

In the backing store each key is scoped as "<userId>:<key>" so several
users can share one spreadsheet or server.

DESIGN DECISION: save_all is ONE batch request.
Either the whole ledger is handed to the store in a single save_many
call or a single StorageError is raised. Callers never have to reason
about which of forty keys made it.
"""

import re
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ValidationError

from finance_tracker.ledger.state import MonthLedger, MonthSnapshot
from finance_tracker.models.finance import MONTH_ID_PATTERN, MonthData, UserProfile
from finance_tracker.services.storage.interface import (
    KeyValueStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


MONTHS_KEY = "months"
PROFILE_KEY = "userProfile"

# Order matters only for readability of the stored keys
ENTITY_KEYS = (
    "incomes",
    "expenses",
    "budgets",
    "goals",
    "debts",
    "recommendations",
    "alerts",
)

MONTH_KEY_RE = re.compile(
    r"^(" + "|".join(ENTITY_KEYS) + r")_" + MONTH_ID_PATTERN[1:]
)


def _dump_list(models: list[BaseModel]) -> list[dict]:
    return [model.model_dump(mode="json") for model in models]


class PersistenceFacade:
    """
    Load and save a user's ledger through any KeyValueStoreInterface.

    Usage:
        facade = PersistenceFacade(InMemoryKeyValueStore(), user_id="alice")
        await facade.save_all(ledger)
        ledger = await facade.load_all()
    """

    def __init__(self, store: KeyValueStoreInterface, user_id: str = "local"):
        if not user_id or ":" in user_id:
            raise ValueError("user_id must be non-empty and must not contain ':'")
        self._store = store
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    @staticmethod
    def month_key(entity: str, month_id: str) -> str:
        """'debts', '2023-04' -> 'debts_2023-04'."""
        key = f"{entity}_{month_id}"
        if not MONTH_KEY_RE.match(key):
            raise ValueError(f"Invalid month key: {key}")
        return key

    def _scoped(self, key: str) -> str:
        return f"{self._user_id}:{key}"

    def _unscoped(self, key: str) -> str:
        return key[len(self._user_id) + 1:]

    # -------------------------------------------------------------------------
    # Single keys
    # -------------------------------------------------------------------------

    async def save(self, key: str, data: Any) -> bool:
        return await self._store.save(self._scoped(key), data)

    async def get(self, key: str) -> Optional[Any]:
        return await self._store.get(self._scoped(key))

    async def delete(self, key: str) -> bool:
        return await self._store.delete(self._scoped(key))

    async def list_keys(self, prefix: str = "") -> list[str]:
        scoped = await self._store.list_keys(self._scoped(prefix))
        return [self._unscoped(key) for key in scoped]

    # -------------------------------------------------------------------------
    # Whole ledger
    # -------------------------------------------------------------------------

    def serialize(self, ledger: MonthLedger) -> dict[str, Any]:
        """Every key of the ledger with its JSON-ready value (unscoped)."""
        items: dict[str, Any] = {
            MONTHS_KEY: _dump_list(ledger.months),
            PROFILE_KEY: ledger.profile.model_dump(mode="json"),
        }
        for month_id in ledger.month_ids:
            snapshot = ledger.snapshots.get(month_id) or MonthSnapshot()
            for entity in ENTITY_KEYS:
                items[self.month_key(entity, month_id)] = _dump_list(getattr(snapshot, entity))
        return items

    async def save_all(self, ledger: MonthLedger) -> int:
        """
        Write the whole ledger in one batch request.

        Returns:
            Number of keys written

        Raises:
            StorageError: the batch failed (no per-key errors)
        """
        items = {self._scoped(key): value for key, value in self.serialize(ledger).items()}
        try:
            written = await self._store.save_many(items)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Saving ledger for {self._user_id} failed: {e}") from e

        logger.info("ledger_saved", user_id=self._user_id, keys=written)
        return written

    async def load_all(self) -> MonthLedger:
        """
        Rebuild the ledger from the store.

        A user with nothing stored gets an empty ledger. Stored data that
        no longer validates raises StorageError.
        """
        try:
            raw_months = await self.get(MONTHS_KEY) or []
            raw_profile = await self.get(PROFILE_KEY)

            months = [MonthData.model_validate(item) for item in raw_months]
            profile = (
                UserProfile.model_validate(raw_profile)
                if raw_profile else UserProfile()
            )

            snapshots = {}
            for month in months:
                values = {}
                for entity in ENTITY_KEYS:
                    values[entity] = await self.get(self.month_key(entity, month.id)) or []
                snapshots[month.id] = MonthSnapshot.model_validate(values)
        except ValidationError as e:
            raise StorageError(f"Stored ledger for {self._user_id} is invalid: {e}") from e

        ledger = MonthLedger(
            user_id=self._user_id,
            profile=profile,
            months=sorted(months, key=lambda month: month.id),
            snapshots=snapshots,
        )
        logger.info("ledger_loaded", user_id=self._user_id, months=len(months))
        return ledger
