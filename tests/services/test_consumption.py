import threading

import pytest
from sqlalchemy.exc import OperationalError

from db.models import LotCondition
from services.consumption_service import ConsumptionService
from services.exceptions import (
    InsufficientQuantityError, NotFoundError, ValidationError,
)
from services.lot_store import LotStore
from tests.factories import LotFactory, PartFactory


def _cut(store, lot_id, amount):
    with store.transaction() as session:
        return ConsumptionService.cut(session, lot_id, amount)


def test_partial_cut_of_new_lot_creates_scrap(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-1", part__default_spec=10.0, quantity=1)

    result = _cut(store, lot.id, 3)

    assert result.lot_id == lot.id
    assert result.remaining_spec == pytest.approx(7.0)
    source, scrap = read_lots("W-1")
    assert source["id"] == lot.id
    assert source["quantity"] == 0
    assert source["condition"] == "NEW"
    assert scrap["id"] == result.scrap_lot_id
    assert scrap["condition"] == "SCRAP"
    assert scrap["quantity"] == 1
    assert scrap["spec_value"] == pytest.approx(7.0)
    assert scrap["location_code"] == lot.location_code


def test_full_cut_leaves_no_remainder_row(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-2", part__default_spec=10.0)

    result = _cut(store, lot.id, 10)

    assert result.remaining_spec == 0
    assert result.scrap_lot_id is None
    lots = read_lots("W-2")
    assert len(lots) == 1
    assert lots[0]["quantity"] == 0


def test_float_residue_counts_as_fully_consumed(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-3", condition="SCRAP", spec_value=0.3)

    result = _cut(store, lot.id, 0.1 + 0.2)

    assert result.remaining_spec == 0
    assert len(read_lots("W-3")) == 1


def test_cut_from_aggregate_lot_detaches_one_piece(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-4", part__default_spec=5.0, quantity=4)

    _cut(store, lot.id, 2)

    source, scrap = read_lots("W-4")
    assert source["quantity"] == 3
    assert source["effective_spec"] == pytest.approx(5.0)
    assert scrap["quantity"] == 1
    assert scrap["spec_value"] == pytest.approx(3.0)


def test_scrap_lot_uses_its_own_spec(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-5", part__default_spec=100.0,
                     condition="SCRAP", spec_value=4.0)

    result = _cut(store, lot.id, 1.5)

    assert result.remaining_spec == pytest.approx(2.5)
    lots = read_lots("W-5")
    assert [l["spec_value"] for l in lots] == [pytest.approx(4.0), pytest.approx(2.5)]


def test_scrap_remainder_can_be_cut_again(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-6", part__default_spec=10.0)

    first = _cut(store, lot.id, 3)
    second = _cut(store, first.scrap_lot_id, 7)

    assert second.remaining_spec == 0
    assert [l["quantity"] for l in read_lots("W-6")] == [0, 0]


@pytest.mark.parametrize("amount", [0.5, 10, 1000])
def test_empty_lot_always_insufficient(store, db_session, amount):
    lot = LotFactory(quantity=0)

    with pytest.raises(InsufficientQuantityError):
        _cut(store, lot.id, amount)


def test_over_consumption_rejected_without_writes(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-7", part__default_spec=10.0, quantity=2)
    before = read_lots("W-7")

    with pytest.raises(ValidationError, match="exceeds"):
        _cut(store, lot.id, 10.5)

    assert read_lots("W-7") == before


@pytest.mark.parametrize("lot_id,amount", [
    (None, 3), (1, None), (1, 0), ("", 3), (0, 3),
])
def test_missing_input_is_validation_error(store, lot_id, amount):
    with pytest.raises(ValidationError, match="required"):
        _cut(store, lot_id, amount)


@pytest.mark.parametrize("amount", [-2, "abc", float("nan"), float("inf"), True])
def test_bad_amount_is_validation_error(store, db_session, amount):
    lot = LotFactory()
    with pytest.raises(ValidationError):
        _cut(store, lot.id, amount)


def test_unknown_lot_is_not_found(store):
    with pytest.raises(NotFoundError):
        _cut(store, 999999, 1)


def test_validation_order_missing_before_not_found(store):
    with pytest.raises(ValidationError):
        _cut(store, 999999, 0)


def test_validation_order_quantity_before_spec(store, db_session):
    lot = LotFactory(quantity=0, part__default_spec=1.0)
    with pytest.raises(InsufficientQuantityError):
        _cut(store, lot.id, 50)


def test_failed_remainder_insert_rolls_back_decrement(store, db_session, read_lots, monkeypatch):
    lot = LotFactory(part__sku="W-8", part__default_spec=10.0)

    def broken_insert(session, **kwargs):
        raise OperationalError("INSERT INTO inventory", {}, Exception("disk I/O error"))

    monkeypatch.setattr(LotStore, "insert_lot", staticmethod(broken_insert))

    with pytest.raises(OperationalError):
        _cut(store, lot.id, 3)

    lots = read_lots("W-8")
    assert len(lots) == 1
    assert lots[0]["quantity"] == 1


def test_stale_read_loses_to_committed_cut(store, db_session, read_lots, monkeypatch):
    """A cut that read quantity=1 must not decrement after another cut took the piece."""
    lot = LotFactory(part__sku="W-9", part__default_spec=10.0, quantity=1)
    original_fetch = LotStore.fetch_lot
    raced = []

    def fetch_then_race(session, lot_id, **kwargs):
        snapshot = original_fetch(session, lot_id, **kwargs)
        if not raced:
            raced.append(True)
            _cut(store, lot_id, 4)
        return snapshot

    monkeypatch.setattr(LotStore, "fetch_lot", staticmethod(fetch_then_race))

    with pytest.raises(InsufficientQuantityError):
        _cut(store, lot.id, 3)

    source, scrap = read_lots("W-9")
    assert source["quantity"] == 0
    assert scrap["spec_value"] == pytest.approx(6.0)


def test_concurrent_cuts_on_single_piece(store, db_session, read_lots):
    lot = LotFactory(part__sku="W-10", part__default_spec=10.0, quantity=1)
    barrier = threading.Barrier(2)
    outcomes = []
    guard = threading.Lock()

    def worker(amount):
        barrier.wait()
        try:
            result = _cut(store, lot.id, amount)
            outcome = ("ok", result.remaining_spec)
        except InsufficientQuantityError:
            outcome = ("insufficient", None)
        with guard:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker, args=(a,)) for a in (3, 4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(kind for kind, _ in outcomes) == ["insufficient", "ok"]
    (winner_remaining,) = [rem for kind, rem in outcomes if kind == "ok"]

    lots = read_lots("W-10")
    assert lots[0]["quantity"] == 0
    scraps = [l for l in lots if l["condition"] == LotCondition.SCRAP.value]
    assert len(scraps) == 1
    assert scraps[0]["spec_value"] == pytest.approx(winner_remaining)


def test_lot_store_insert_and_default_spec(db_session):
    part = PartFactory(sku="LS-1", default_spec=25.0)
    lot = LotFactory(part=part, quantity=2)

    assert LotStore.default_spec(db_session, "LS-1") == 25.0
    assert LotStore.default_spec(db_session, "NOPE") is None

    snap = LotStore.fetch_lot(db_session, lot.id)
    assert snap.effective_spec == 25.0
    assert snap.quantity == 2
    assert LotStore.count_live_lots(db_session, "LS-1") == 1


@pytest.mark.parametrize("offset", [0.7, 0.5])
def test_fractional_lot_id_is_rejected(store, db_session, read_lots, offset):
    lot = LotFactory(part__sku="W-9", part__default_spec=10.0)

    with pytest.raises(ValidationError, match="Inventory ID must be an integer"):
        _cut(store, lot.id + offset, 3)

    assert [(l["quantity"], l["condition"]) for l in read_lots("W-9")] == [(1, "NEW")]


def test_whole_float_lot_id_is_accepted(store, db_session):
    lot = LotFactory(part__default_spec=10.0)
    assert _cut(store, float(lot.id), 3).lot_id == lot.id
