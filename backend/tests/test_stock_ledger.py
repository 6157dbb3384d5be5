from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import pytest
from filelock import Timeout
from sqlalchemy.exc import OperationalError

from app.db import SessionLocal, init_db
from app.models.user_account import Role
from app.services import stock_ledger_service
from app.services.stock_ledger_service import (
    CommitFailed,
    InsufficientCartons,
    InsufficientStock,
    InvalidCartons,
    InvalidOperation,
    InvalidQuantity,
    Operation,
    ProductNotFound,
    StockLedgerService,
    Unauthorized,
    default_reason,
    plan_adjustment,
)
from conftest import audit_count, load_product, seed_group, seed_product, seed_user, session_for

ADMIN_UID = None
CLERK_UID = None
GROUP_ID = None


def setup_module(module):
    global ADMIN_UID, CLERK_UID, GROUP_ID
    init_db(reset=True)
    ADMIN_UID = seed_user("ledger-admin@example.com", role=Role.ADMIN)
    CLERK_UID = seed_user("ledger-clerk@example.com", role=Role.USER)
    GROUP_ID = seed_group("Ledger")


def _apply(product_id, operation, quantity, cartons=None, reason=None, uid=None, role=Role.ADMIN):
    db = SessionLocal()
    try:
        svc = StockLedgerService(db)
        outcome = svc.apply_adjustment(
            product_id,
            operation,
            quantity,
            cartons,
            session=session_for(uid or ADMIN_UID, role=role),
            reason=reason,
        )
        return {
            "stock": outcome.product.stock,
            "cartons": outcome.product.cartons,
            "adjustment_id": outcome.adjustment_id,
            "reason": outcome.adjustment.reason,
            "user_id": outcome.adjustment.user_id,
            "new_stock": outcome.adjustment.new_stock,
            "new_cartons": outcome.adjustment.new_cartons,
        }
    finally:
        db.close()


# --- planning (pure) ---


def test_plan_add_sums_stock_and_cartons():
    plan = plan_adjustment(SimpleNamespace(stock=50, cartons=5), "add", "20", "2", "")
    assert plan.operation is Operation.ADD
    assert (plan.new_stock, plan.new_cartons) == (70, 7)
    assert plan.reason == "Added 20 units and 2 cartons"


def test_plan_remove_down_to_zero():
    plan = plan_adjustment(SimpleNamespace(stock=10, cartons=1), "remove", 10, 1)
    assert (plan.new_stock, plan.new_cartons) == (0, 0)


def test_plan_treats_missing_cartons_as_zero():
    plan = plan_adjustment(SimpleNamespace(stock=3, cartons=None), "add", 2)
    assert plan.new_cartons == 0
    assert plan.cartons_delta == 0


@pytest.mark.parametrize(
    "quantity",
    ["abc", "", "  ", None, 0, "0", -4, "-4", "1.5", 2.0, True, 2**31, "99999999999999999999", "9" * 5000],
)
def test_plan_rejects_bad_quantity(quantity):
    with pytest.raises(InvalidQuantity):
        plan_adjustment(SimpleNamespace(stock=10, cartons=0), "add", quantity)


@pytest.mark.parametrize("cartons", ["x", "-1", -1, "2.5", "99999999999"])
def test_plan_rejects_bad_cartons(cartons):
    with pytest.raises(InvalidCartons):
        plan_adjustment(SimpleNamespace(stock=10, cartons=5), "add", 1, cartons)


def test_plan_blank_quantity_asks_for_one():
    for blank in ("", "   ", None):
        with pytest.raises(InvalidQuantity) as exc:
            plan_adjustment(SimpleNamespace(stock=10, cartons=0), "add", blank)
        assert str(exc.value) == "Please enter quantity"
    with pytest.raises(InvalidQuantity) as exc:
        plan_adjustment(SimpleNamespace(stock=10, cartons=0), "add", "abc")
    assert str(exc.value) == "Please enter a valid quantity"


def test_plan_add_refuses_to_overflow_counts():
    near_full = SimpleNamespace(stock=2**31 - 10, cartons=2**31 - 1)
    with pytest.raises(InvalidQuantity):
        plan_adjustment(near_full, "add", 10)
    with pytest.raises(InvalidCartons):
        plan_adjustment(near_full, "add", 9, 1)
    assert plan_adjustment(near_full, "add", 9).new_stock == 2**31 - 1


def test_plan_quantity_checked_before_cartons():
    with pytest.raises(InvalidQuantity):
        plan_adjustment(SimpleNamespace(stock=10, cartons=5), "add", "abc", "x")


def test_plan_rejects_unknown_operation():
    with pytest.raises(InvalidOperation):
        plan_adjustment(SimpleNamespace(stock=10, cartons=5), "transfer", 1)


def test_plan_remove_insufficient_cartons():
    with pytest.raises(InsufficientCartons):
        plan_adjustment(SimpleNamespace(stock=10, cartons=1), "remove", 1, 2)


def test_plan_keeps_trimmed_caller_reason():
    plan = plan_adjustment(SimpleNamespace(stock=10, cartons=0), "remove", 1, None, "  damaged in transit ")
    assert plan.reason == "damaged in transit"


def test_default_reason_omits_zero_cartons():
    assert default_reason(Operation.REMOVE, 5, 0) == "Removed 5 units"
    assert default_reason(Operation.REMOVE, 5, 3) == "Removed 5 units and 3 cartons"


# --- committed adjustments ---


def test_add_commits_product_and_audit():
    pid = seed_product(GROUP_ID, name="Scenario One", stock=50, cartons=5)
    before = load_product(pid)

    result = _apply(pid, "add", "20", "2", "")

    assert (result["stock"], result["cartons"]) == (70, 7)
    assert (result["new_stock"], result["new_cartons"]) == (70, 7)
    assert result["reason"] == "Added 20 units and 2 cartons"
    assert result["user_id"] == ADMIN_UID
    assert result["adjustment_id"] is not None
    after = load_product(pid)
    assert (after["stock"], after["cartons"]) == (70, 7)
    assert after["updated_at"] >= before["updated_at"]
    assert audit_count(pid) == 1


def test_remove_more_than_stock_leaves_product_untouched():
    pid = seed_product(GROUP_ID, name="Scenario Two", stock=10, cartons=0)
    before = load_product(pid)

    with pytest.raises(InsufficientStock) as exc:
        _apply(pid, "remove", 15)

    assert str(exc.value) == "Not enough stock available"
    assert load_product(pid) == before
    assert audit_count(pid) == 0


def test_non_numeric_quantity_writes_nothing():
    pid = seed_product(GROUP_ID, name="Scenario Three", stock=10, cartons=0)
    before = load_product(pid)

    with pytest.raises(InvalidQuantity):
        _apply(pid, "add", "abc")

    assert load_product(pid) == before
    assert audit_count(pid) == 0


def test_rejection_is_repeatable():
    pid = seed_product(GROUP_ID, name="Repeat", stock=4, cartons=1)
    before = load_product(pid)
    for _ in range(2):
        with pytest.raises(InsufficientCartons):
            _apply(pid, "remove", 1, 2)
    assert load_product(pid) == before
    assert audit_count(pid) == 0


def test_sequential_removals_never_go_negative():
    pid = seed_product(GROUP_ID, name="Drain", stock=5, cartons=0)
    assert _apply(pid, "remove", 3)["stock"] == 2
    with pytest.raises(InsufficientStock):
        _apply(pid, "remove", 3)
    assert _apply(pid, "remove", 2)["stock"] == 0
    assert audit_count(pid) == 2


def test_non_admin_is_refused_before_any_write():
    pid = seed_product(GROUP_ID, name="Guarded", stock=10, cartons=0)
    before = load_product(pid)

    with pytest.raises(Unauthorized):
        _apply(pid, "add", 5, uid=CLERK_UID, role=Role.USER)

    assert load_product(pid) == before
    assert audit_count(pid) == 0


def test_unknown_product():
    with pytest.raises(ProductNotFound):
        _apply(999999, "add", 1)


def test_store_failure_rolls_back_both_writes(monkeypatch):
    pid = seed_product(GROUP_ID, name="Flaky", stock=10, cartons=2)
    before = load_product(pid)

    def broken_append(self, **fields):
        raise OperationalError("INSERT INTO stock_adjustments", {}, Exception("connection lost"))

    monkeypatch.setattr(stock_ledger_service.AdjustmentRepository, "append", broken_append)

    with pytest.raises(CommitFailed):
        _apply(pid, "add", 5)

    assert load_product(pid) == before
    assert audit_count(pid) == 0


def test_busy_product_lock_fails_cleanly(monkeypatch):
    pid = seed_product(GROUP_ID, name="Busy", stock=10, cartons=0)

    def contended(product_id, timeout):
        raise Timeout(f"product_{product_id}.lock")

    monkeypatch.setattr(stock_ledger_service, "product_lock", contended)

    with pytest.raises(CommitFailed):
        _apply(pid, "remove", 1)
    assert load_product(pid)["stock"] == 10
    assert audit_count(pid) == 0


def test_history_is_newest_first():
    pid = seed_product(GROUP_ID, name="History", stock=0, cartons=0)
    _apply(pid, "add", 5, reason="first")
    _apply(pid, "add", 1, reason="second")

    db = SessionLocal()
    try:
        entries = StockLedgerService(db).history(pid)
        assert [e.reason for e in entries] == ["second", "first"]
        assert [e.new_stock for e in entries] == [6, 5]
    finally:
        db.close()


def test_parallel_removals_cannot_oversell():
    stock, workers = 5, 12
    pid = seed_product(GROUP_ID, name="Contended", stock=stock, cartons=0)

    def remove_one(_):
        try:
            return _apply(pid, "remove", 1)["stock"]
        except InsufficientStock as e:
            return e.code

    with ThreadPoolExecutor(max_workers=workers) as ex:
        results = list(ex.map(remove_one, range(workers)))

    succeeded = [r for r in results if isinstance(r, int)]
    assert len(succeeded) == stock
    assert sorted(succeeded) == list(range(stock))
    assert results.count("insufficient_stock") == workers - stock
    assert load_product(pid)["stock"] == 0
    assert audit_count(pid) == stock
