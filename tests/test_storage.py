"""
TradeCockpit Storage Tests
"""

import threading

import pytest

from core.errors import (
    PositionNotFoundError,
    PreconditionError,
    SignalNotFoundError,
    UnknownAccountError,
)
from core.models import Signal, SignalType
from data.storage import AccountStore, PositionStore, SettingsStore, WatchlistStore


class TestAccountStore:

    @pytest.fixture
    def accounts(self):
        return AccountStore.from_balances({"ira": 42000.0, "tasty": 28000.0})

    def test_default_account_set(self, accounts):
        """Test the default account set."""
        ids = [a.id for a in accounts.list()]

        assert ids == ["ira", "tasty", "inherited"]
        assert accounts.get("inherited").balance == 0.0
        assert accounts.get("ira").name == "IRA"

    def test_set_balance_overwrites(self, accounts):
        """Test balance overwrite."""
        accounts.set_balance("tasty", 30500.0)

        assert accounts.get("tasty").balance == 30500.0

    def test_unknown_account(self, accounts):
        """Test lookup of an unknown account."""
        with pytest.raises(UnknownAccountError):
            accounts.get("roth")
        with pytest.raises(UnknownAccountError):
            accounts.set_balance("roth", 1.0)

    def test_returned_accounts_are_copies(self, accounts):
        """Test that stored accounts are returned as copies."""
        account = accounts.get("ira")
        account.balance = 0.0

        assert accounts.get("ira").balance == 42000.0


class TestPositionStore:

    @pytest.fixture
    def store(self):
        return PositionStore()

    @pytest.fixture
    def position(self, store):
        return store.create("NVDA", "ira", 100.0, 10, 90.0)

    def test_create_assigns_unique_ids(self, store):
        """Test unique position ids."""
        first = store.create("NVDA", "ira", 100.0, 10, 90.0)
        second = store.create("NVDA", "ira", 100.0, 10, 90.0)

        assert first.id != second.id
        assert first.triggered7 is False
        assert first.manual_stop is None
        assert len(store.list()) == 2

    def test_update_manual_stop_and_clear(self, store, position):
        """Test manual stop update and clear."""
        store.update(position.id, manual_stop=97.5)
        assert store.get(position.id).manual_stop == 97.5

        store.update(position.id, manual_stop=None)
        assert store.get(position.id).manual_stop is None

    def test_trigger_flag_is_one_way(self, store, position):
        """Test that the trigger flag cannot be reset."""
        store.update(position.id, triggered7=True)
        assert store.get(position.id).triggered7 is True

        with pytest.raises(PreconditionError):
            store.update(position.id, triggered7=False)
        assert store.get(position.id).triggered7 is True

    def test_update_leaves_other_fields_alone(self, store, position):
        """Test that updates touch only the named fields."""
        store.update(position.id, manual_stop=95.0)
        updated = store.get(position.id)

        assert updated.entry_price == 100.0
        assert updated.shares == 10
        assert updated.triggered7 is False

    def test_update_rejects_unknown_fields(self, store, position):
        """Test rejection of unsupported update fields."""
        with pytest.raises(TypeError):
            store.update(position.id, shares=5)

    def test_delete_removes_permanently(self, store, position):
        """Test permanent position deletion."""
        store.delete(position.id)

        assert store.list() == []
        with pytest.raises(PositionNotFoundError):
            store.get(position.id)
        with pytest.raises(PositionNotFoundError):
            store.delete(position.id)

    def test_unknown_ids_leave_no_lock_behind(self, store, position):
        """Test that updates and deletes of unknown ids keep no lock state."""
        for missing in ("nope", "gone", "never"):
            with pytest.raises(PositionNotFoundError):
                store.update(missing, manual_stop=1.0)
            with pytest.raises(PositionNotFoundError):
                store.delete(missing)

        assert set(store._position_locks) == {position.id}

        store.delete(position.id)
        assert store._position_locks == {}

    def test_concurrent_updates_are_serialized(self, store, position):
        """Test serialization of concurrent updates."""
        stops = [90.0 + i / 100 for i in range(50)]

        threads = [
            threading.Thread(target=store.update, args=(position.id,), kwargs={"manual_stop": s})
            for s in stops
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get(position.id).manual_stop in stops


class TestWatchlistStore:

    def test_add_assigns_id_and_remove(self):
        """Test watchlist add and remove."""
        store = WatchlistStore()
        signal = store.add(Signal(ticker="CRDO", signal=SignalType.BREAKOUT))

        assert signal.id
        assert [s.ticker for s in store.list()] == ["CRDO"]

        store.remove(signal.id)
        assert store.list() == []
        with pytest.raises(SignalNotFoundError):
            store.remove(signal.id)

    def test_signal_labels(self):
        """Test signal badge labels."""
        assert Signal(ticker="VRT", signal=SignalType.ABOVE, days=4).label == "4d above AVWAP"
        assert Signal(ticker="VRT").label == "WATCHING"
        assert Signal(ticker="VRT", signal=SignalType.EARNINGS).label == "EARNINGS"


class TestSettingsStore:

    @pytest.mark.parametrize("value", [0.5, 1.0, 1.5, 2.0])
    def test_accepts_offered_choices(self, value):
        """Test the offered risk percent choices."""
        store = SettingsStore()
        store.risk_percent = value

        assert store.risk_percent == value

    @pytest.mark.parametrize("value", [0.0, 0.75, 3.0, -1.0, True])
    def test_rejects_other_values(self, value):
        """Test rejection of other risk percent values."""
        store = SettingsStore(1.5)

        with pytest.raises(PreconditionError):
            store.risk_percent = value
        assert store.risk_percent == 1.5
