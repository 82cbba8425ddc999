import logging

import pytest

from academy.infra import revalidate
from academy.payments import service
from academy.payments.service import verify_purchase


def _course_session(session_id="cs_course", amount_total=4999, **extra):
    session = {
        "id": session_id,
        "status": "complete",
        "payment_status": "paid",
        "amount_total": amount_total,
        "metadata": {"userId": "u1", "courseId": "c1", "courseSlug": "intro"},
    }
    session.update(extra)
    return session

@pytest.fixture
def revalidated():
    paths = []
    revalidate.add_listener(paths.append)
    yield paths
    revalidate.remove_listener(paths.append)


def test_missing_session_id():
    result = verify_purchase("  ")
    assert result.success is False
    assert result.error == "Session ID is required."

def test_course_purchase_twice_creates_one_row(fake_db, stripe_sessions, revalidated):
    stripe_sessions["cs_course"] = _course_session()

    first = verify_purchase("cs_course")
    second = verify_purchase("cs_course")

    assert first.success and second.success
    assert first.message == "Course purchase verified."
    assert first.already_verified is False
    assert second.already_verified is True
    rows = fake_db.rows("user_course_enrollments")
    assert len(rows) == 1
    assert rows[0]["price_paid"] == 49.99
    assert rows[0]["stripe_checkout_session_id"] == "cs_course"
    assert revalidated == ["/courses/intro", "/dashboard"]

def test_course_duplicate_from_other_session_is_success(fake_db, stripe_sessions):
    fake_db.tables["user_course_enrollments"] = [
        {"id": "e1", "user_id": "u1", "course_id": "c1", "stripe_checkout_session_id": "cs_old"},
    ]
    stripe_sessions["cs_new"] = _course_session("cs_new")

    result = verify_purchase("cs_new")

    assert result.success is True
    assert result.already_verified is True
    assert result.message == "Course purchase already verified."
    assert len(fake_db.rows("user_course_enrollments")) == 1

def test_concurrent_triggers_race_on_insert(fake_db, stripe_sessions, monkeypatch):
    # Les deux déclencheurs passent le pré-contrôle avant toute écriture
    stripe_sessions["cs_course"] = _course_session()
    monkeypatch.setattr(service.repository, "find_course_enrollment_by_session", lambda session_id: None)

    results = [verify_purchase("cs_course"), verify_purchase("cs_course")]

    assert all(r.success for r in results)
    assert [r.already_verified for r in results] == [False, True]
    assert len(fake_db.rows("user_course_enrollments")) == 1

def test_cart_purchase_splits_total_and_clears_cart(fake_db, stripe_sessions, revalidated):
    fake_db.tables["cart_items"] = [
        {"id": "ci1", "user_id": "u1", "course_id": "A"},
        {"id": "ci2", "user_id": "u1", "course_id": "B"},
        {"id": "ci3", "user_id": "u1", "course_id": "C"},
        {"id": "ci4", "user_id": "other", "course_id": "A"},
    ]
    stripe_sessions["cs_cart"] = {
        "id": "cs_cart",
        "status": "complete",
        "payment_status": "paid",
        "amount_total": 300,
        "metadata": {"userId": "u1", "isCartCheckout": "true", "courseIds": '["A","B","C"]'},
    }

    result = verify_purchase("cs_cart")

    assert result.success is True
    assert result.created == 3
    assert result.message == "Cart purchase verified. 3 new enrollment(s) created."
    rows = fake_db.rows("user_course_enrollments")
    assert sorted(r["course_id"] for r in rows) == ["A", "B", "C"]
    assert all(r["price_paid"] == 1.0 for r in rows)
    assert fake_db.rows("cart_items") == [{"id": "ci4", "user_id": "other", "course_id": "A"}]
    assert revalidated == ["/courses", "/dashboard"]

    again = verify_purchase("cs_cart")
    assert again.success is True
    assert again.already_verified is True
    assert len(fake_db.rows("user_course_enrollments")) == 3

def test_cart_item_failure_does_not_abort_batch(fake_db, stripe_sessions):
    fake_db.tables["user_course_enrollments"] = [
        {"id": "e0", "user_id": "u1", "course_id": "A", "stripe_checkout_session_id": "cs_old"},
    ]
    fake_db.tables["cart_items"] = [{"id": "ci1", "user_id": "u1", "course_id": "C"}]
    fake_db.fail_on = lambda table, op, payload: (
        table == "user_course_enrollments" and op == "insert" and payload.get("course_id") == "B"
    )
    stripe_sessions["cs_cart"] = {
        "id": "cs_cart",
        "status": "complete",
        "payment_status": "paid",
        "amount_total": 3000,
        "metadata": {"userId": "u1", "isCartCheckout": "true", "courseIds": '["A","B","C"]'},
    }

    result = verify_purchase("cs_cart")

    assert result.success is True
    assert (result.created, result.skipped, result.failed) == (1, 1, 1)
    assert result.already_verified is False
    assert sorted(r["course_id"] for r in fake_db.rows("user_course_enrollments")) == ["A", "C"]
    assert fake_db.rows("cart_items") == []

def test_unpaid_session_persists_nothing(fake_db, stripe_sessions):
    stripe_sessions["cs_open"] = _course_session("cs_open", status="open", payment_status="unpaid")

    result = verify_purchase("cs_open")

    assert result.success is False
    assert result.error == "Payment not completed successfully."
    assert fake_db.rows("user_course_enrollments") == []

def test_payment_status_paid_alone_is_enough(fake_db, stripe_sessions):
    stripe_sessions["cs_paid"] = _course_session("cs_paid", status="open")
    assert verify_purchase("cs_paid").success is True

EXPANDED_SUBSCRIPTION = {"id": "sub_1", "object": "subscription"}

def _program_session(subscription=EXPANDED_SUBSCRIPTION):
    return {
        "id": "cs_prog",
        "status": "complete",
        "payment_status": "paid",
        "amount_total": 10000,
        "subscription": subscription,
        "metadata": {"userId": "u1", "programEnrollmentId": "pe-1"},
    }

def test_program_activation_is_idempotent(fake_db, stripe_sessions, revalidated):
    fake_db.tables["program_enrollments"] = [
        {"id": "pe-1", "user_id": "u1", "status": "pending_payment", "stripe_checkout_session_id": "cs_prog"},
    ]
    stripe_sessions["cs_prog"] = _program_session()

    first = verify_purchase("cs_prog")
    second = verify_purchase("cs_prog")

    assert first.success is True
    assert first.message == "Program enrollment verified."
    row = fake_db.rows("program_enrollments")[0]
    assert row["status"] == "active"
    assert row["stripe_subscription_id"] == "sub_1"
    assert second.success is True
    assert second.already_verified is True
    assert revalidated == ["/dashboard"]

def test_program_accepts_unexpanded_subscription_id(fake_db, stripe_sessions):
    fake_db.tables["program_enrollments"] = [{"id": "pe-1", "user_id": "u1", "status": "pending_payment"}]
    stripe_sessions["cs_prog"] = _program_session(subscription="sub_plain")

    assert verify_purchase("cs_prog").success is True
    assert fake_db.rows("program_enrollments")[0]["stripe_subscription_id"] == "sub_plain"

def test_program_without_subscription(fake_db, stripe_sessions):
    fake_db.tables["program_enrollments"] = [{"id": "pe-1", "user_id": "u1", "status": "pending_payment"}]
    stripe_sessions["cs_prog"] = _program_session(subscription=None)

    result = verify_purchase("cs_prog")

    assert result.success is False
    assert result.error == "Subscription details missing."
    assert fake_db.rows("program_enrollments")[0]["status"] == "pending_payment"

def test_program_row_of_other_user_is_not_updated(fake_db, stripe_sessions):
    fake_db.tables["program_enrollments"] = [{"id": "pe-1", "user_id": "someone-else", "status": "pending_payment"}]
    stripe_sessions["cs_prog"] = _program_session()

    result = verify_purchase("cs_prog")

    assert result.success is False
    assert result.error == "Failed to update enrollment record."
    assert fake_db.rows("program_enrollments")[0]["status"] == "pending_payment"

def test_unrecognized_metadata_logs_warning(fake_db, stripe_sessions, caplog):
    stripe_sessions["cs_x"] = _course_session("cs_x", metadata={"userId": "u1", "foo": "bar"})

    with caplog.at_level(logging.WARNING, logger="academy.payments.service"):
        result = verify_purchase("cs_x")

    assert result.success is False
    assert result.error == "Unrecognized purchase type."
    assert "foo" in caplog.text

def test_missing_user_in_metadata(fake_db, stripe_sessions):
    stripe_sessions["cs_x"] = _course_session("cs_x", metadata={"courseId": "c1"})
    result = verify_purchase("cs_x")
    assert result.error == "Required information missing from purchase session."

def test_session_of_another_user_is_rejected(fake_db, stripe_sessions):
    stripe_sessions["cs_course"] = _course_session()

    result = verify_purchase("cs_course", expected_user_id="intruder")

    assert result.success is False
    assert result.error == "This purchase belongs to another account."
    assert fake_db.rows("user_course_enrollments") == []

def test_precheck_database_error(fake_db, stripe_sessions):
    fake_db.fail_on = lambda table, op, payload: table == "program_enrollments"
    result = verify_purchase("cs_course")
    assert result.success is False
    assert result.error == "Database error during pre-check."

def test_provider_error_is_returned_not_raised(fake_db, stripe_sessions):
    result = verify_purchase("cs_unknown")
    assert result.success is False
    assert "No such checkout.session" in result.error

def test_already_verified_is_logged_distinctly(fake_db, stripe_sessions, caplog):
    stripe_sessions["cs_course"] = _course_session()
    verify_purchase("cs_course")

    with caplog.at_level(logging.INFO, logger="academy.payments.service"):
        verify_purchase("cs_course")
    assert "already_verified" in caplog.text
