"""
Tests for the persistence facade.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.ledger import new_ledger
from finance_tracker.models.finance import (
    Debt,
    Expense,
    ExpenseCategory,
    Goal,
    GoalType,
    Income,
    UserProfile,
)
from finance_tracker.services import (
    InMemoryKeyValueStore,
    PersistenceFacade,
    StorageError,
)


@pytest.fixture
def ledger():
    debt = Debt(name="Card", original_principal=Decimal("1000"))
    goal = Goal(name="Pay off Card", type=GoalType.DEBT_PAYOFF, target_amount=Decimal("1000"))
    ledger = (
        new_ledger(month_id="2024-01", profile=UserProfile(name="Sam"))
        .add_income(Income(source="Employer", amount=Decimal("3000"), date=date(2024, 1, 1)))
        .add_expense(Expense(
            amount=Decimal("120.50"),
            category=ExpenseCategory.GROCERIES,
            date=date(2024, 1, 3),
        ))
        .add_debt(debt)
        .add_goal(goal)
        .set_budget(ExpenseCategory.GROCERIES, 400)
    )
    ledger, _ = ledger.record_debt_payment(debt.id, 200, date(2024, 1, 15))
    return ledger.add_month("2024-02")


class FailingStore(InMemoryKeyValueStore):
    """Batch writes blow up the way a dropped connection would."""

    def __init__(self, error):
        super().__init__()
        self.error = error

    async def save_many(self, items):
        raise self.error


class TestKeys:
    """Tests for key naming and scoping."""

    def test_month_key(self):
        """Test entity keys carry the month id."""
        assert PersistenceFacade.month_key("debts", "2023-04") == "debts_2023-04"

    @pytest.mark.parametrize("entity,month_id", [
        ("debts", "2023-4"),
        ("debts", "2023-13"),
        ("widgets", "2023-04"),
    ])
    def test_invalid_month_keys(self, entity, month_id):
        """Test unknown entities and malformed months are refused."""
        with pytest.raises(ValueError):
            PersistenceFacade.month_key(entity, month_id)

    def test_user_id_must_be_usable_as_prefix(self):
        """Test empty or colon-containing user ids are rejected."""
        with pytest.raises(ValueError):
            PersistenceFacade(InMemoryKeyValueStore(), user_id="")
        with pytest.raises(ValueError):
            PersistenceFacade(InMemoryKeyValueStore(), user_id="a:b")

    def test_users_do_not_see_each_other(self):
        """Test two users sharing a store have separate keys."""
        store = InMemoryKeyValueStore()
        alice = PersistenceFacade(store, user_id="alice")
        bob = PersistenceFacade(store, user_id="bob")

        asyncio.run(alice.save("userProfile", {"name": "Alice"}))

        assert asyncio.run(bob.get("userProfile")) is None
        assert asyncio.run(alice.list_keys()) == ["userProfile"]
        assert asyncio.run(store.list_keys()) == ["alice:userProfile"]


class TestSaveAndLoad:
    """Tests for whole-ledger save and load."""

    def test_serialize_layout(self, ledger):
        """Test every month gets one key per entity list."""
        items = PersistenceFacade(InMemoryKeyValueStore()).serialize(ledger)
        assert len(items) == 2 + 7 * 2
        assert items["months"][0]["id"] == "2024-01"
        assert items["debts_2024-01"][0]["balance"] == "800.00"
        assert items["debts_2024-02"] == []

    def test_round_trip(self, ledger):
        """Test a saved ledger loads back identical."""
        store = InMemoryKeyValueStore()
        facade = PersistenceFacade(store, user_id="local")

        written = asyncio.run(facade.save_all(ledger))
        loaded = asyncio.run(facade.load_all())

        assert written == 16
        assert loaded.model_dump(mode="json") == ledger.model_dump(mode="json")
        assert loaded.active_month_id == "2024-01"

    def test_load_empty_store(self):
        """Test a user with nothing saved gets an empty ledger."""
        loaded = asyncio.run(PersistenceFacade(InMemoryKeyValueStore()).load_all())
        assert loaded.months == []
        assert loaded.profile == UserProfile()

    def test_invalid_stored_data(self):
        """Test corrupt stored months raise StorageError."""
        store = InMemoryKeyValueStore({"local:months": [{"id": "2024-13"}]})
        with pytest.raises(StorageError):
            asyncio.run(PersistenceFacade(store).load_all())

    def test_batch_failure_is_one_error(self, ledger):
        """Test an unexpected batch failure surfaces as a single StorageError."""
        facade = PersistenceFacade(FailingStore(RuntimeError("socket closed")))
        with pytest.raises(StorageError) as exc_info:
            asyncio.run(facade.save_all(ledger))
        assert "socket closed" in str(exc_info.value)

    def test_storage_error_passes_through(self, ledger):
        """Test StorageError from the backend is not wrapped again."""
        original = StorageError("quota exceeded")
        facade = PersistenceFacade(FailingStore(original))
        with pytest.raises(StorageError) as exc_info:
            asyncio.run(facade.save_all(ledger))
        assert exc_info.value is original


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
