import json
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from academy.payments import checkout

USER = {"id": "u1", "email": "parent@example.com"}
COURSE = {"id": "c1", "title": "Intro to Gurmukhi", "slug": "intro", "price": 49.99, "thumbnail_image_url": None}


@pytest.fixture
def created_sessions(monkeypatch):
    calls = []

    def _create_session(**params):
        calls.append(params)
        return {"id": f"cs_{len(calls)}", "url": "https://checkout.stripe.test/pay"}

    monkeypatch.setattr(checkout.stripe_client, "create_session", _create_session)
    return calls


def test_course_checkout_builds_metadata_and_urls(monkeypatch, created_sessions):
    monkeypatch.setattr(checkout.courses_repository, "get_course_by_slug", lambda slug: dict(COURSE))
    monkeypatch.setattr(checkout.courses_repository, "user_has_course", lambda uid, cid: False)

    session = checkout.create_course_checkout_session(USER, "intro", base_url="https://academy.test")

    assert session["id"] == "cs_1"
    params = created_sessions[0]
    assert params["mode"] == "payment"
    assert params["metadata"] == {"userId": "u1", "courseId": "c1", "courseSlug": "intro"}
    assert params["success_url"] == "https://academy.test/courses/intro?success=true&session_id={CHECKOUT_SESSION_ID}"
    assert params["cancel_url"] == "https://academy.test/courses/intro?canceled=true"
    assert params["line_items"][0]["price_data"]["unit_amount"] == 4999
    assert params["customer_email"] == "parent@example.com"

def test_course_checkout_unknown_course(monkeypatch, created_sessions):
    monkeypatch.setattr(checkout.courses_repository, "get_course_by_slug", lambda slug: None)
    with pytest.raises(HTTPException) as exc:
        checkout.create_course_checkout_session(USER, "missing")
    assert exc.value.status_code == 404
    assert created_sessions == []

def test_course_checkout_already_enrolled(monkeypatch, created_sessions):
    monkeypatch.setattr(checkout.courses_repository, "get_course_by_slug", lambda slug: dict(COURSE))
    monkeypatch.setattr(checkout.courses_repository, "user_has_course", lambda uid, cid: True)
    with pytest.raises(HTTPException) as exc:
        checkout.create_course_checkout_session(USER, "intro")
    assert exc.value.status_code == 409

def test_cart_checkout_skips_owned_and_duplicates(monkeypatch, created_sessions):
    items = [
        {"id": "i1", "course_id": "A", "courses": {"title": "A", "price": 10, "slug": "a"}},
        {"id": "i2", "course_id": "B", "courses": {"title": "B", "price": 20.5, "slug": "b"}},
        {"id": "i3", "course_id": "A", "courses": {"title": "A", "price": 10, "slug": "a"}},
        {"id": "i4", "course_id": "C", "courses": {"title": "C", "price": 5, "slug": "c"}},
    ]
    monkeypatch.setattr(checkout.cart_repository, "list_cart_items", lambda uid: items)
    monkeypatch.setattr(checkout.courses_repository, "user_has_course", lambda uid, cid: cid == "C")

    checkout.create_cart_checkout_session(USER, base_url="https://academy.test")

    params = created_sessions[0]
    assert [li["price_data"]["unit_amount"] for li in params["line_items"]] == [1000, 2050]
    assert params["metadata"]["isCartCheckout"] == "true"
    assert json.loads(params["metadata"]["courseIds"]) == ["A", "B"]
    assert params["success_url"] == "https://academy.test/courses?success=true&checkout_session_id={CHECKOUT_SESSION_ID}"
    assert params["cancel_url"] == "https://academy.test/courses?canceled=true"

def test_cart_checkout_empty_cart(monkeypatch, created_sessions):
    monkeypatch.setattr(checkout.cart_repository, "list_cart_items", lambda uid: [])
    with pytest.raises(HTTPException) as exc:
        checkout.create_cart_checkout_session(USER)
    assert exc.value.status_code == 400
    assert exc.value.detail == "Your cart is empty."

def _program_setup(monkeypatch, children):
    monkeypatch.setattr(checkout, "STRIPE_MONTHLY_PRICE_ID", "price_monthly")
    monkeypatch.setattr(checkout, "STRIPE_YEARLY_PRICE_ID", "price_yearly")
    monkeypatch.setattr(checkout.programs_repository, "fetch_children_with_enrollments", lambda uid: children)
    repo = MagicMock()
    repo.create_pending_program_enrollment.return_value = {"id": "pe-1", "status": "pending_payment"}
    monkeypatch.setattr(checkout, "repository", repo)
    return repo

def test_program_checkout_pending_row_then_session(monkeypatch, created_sessions):
    children = [
        {"name": "A", "enrollments": [{}, {}, {}, {}]},
        {"name": "B", "enrollments": [{}]},
        {"name": "C", "enrollments": [{}]},
    ]
    repo = _program_setup(monkeypatch, children)

    checkout.create_program_checkout_session(USER, "Family Program", "sunday_beginner", "monthly", base_url="https://academy.test")

    repo.create_pending_program_enrollment.assert_called_once_with(
        user_id="u1", program_name="Family Program", selected_slot="sunday_beginner", billing_cycle="monthly",
    )
    params = created_sessions[0]
    assert params["mode"] == "subscription"
    assert params["metadata"] == {"userId": "u1", "programEnrollmentId": "pe-1"}
    assert params["line_items"][0] == {"price": "price_monthly", "quantity": 1}
    # 1 enfant + 1 cours au-delà du forfait
    assert [li["quantity"] for li in params["line_items"][1:]] == [1, 1]
    assert params["success_url"].startswith("https://academy.test/dashboard?program_enrollment=success")
    assert "session_id={CHECKOUT_SESSION_ID}" in params["success_url"]
    assert params["cancel_url"] == "https://academy.test/programs?canceled=true"
    repo.attach_checkout_session.assert_called_once_with("pe-1", "cs_1")
    repo.mark_program_enrollment_failed.assert_not_called()

def test_program_checkout_yearly_price(monkeypatch, created_sessions):
    _program_setup(monkeypatch, [])
    checkout.create_program_checkout_session(USER, "Family Program", "sunday_advanced", "yearly")
    assert created_sessions[0]["line_items"] == [{"price": "price_yearly", "quantity": 1}]

def test_program_checkout_missing_price_id(monkeypatch, created_sessions):
    repo = _program_setup(monkeypatch, [])
    monkeypatch.setattr(checkout, "STRIPE_MONTHLY_PRICE_ID", "")
    with pytest.raises(HTTPException) as exc:
        checkout.create_program_checkout_session(USER, "Family Program", "sunday_beginner", "monthly")
    assert exc.value.status_code == 500
    assert exc.value.detail == "Server configuration error. Please contact support."
    repo.create_pending_program_enrollment.assert_not_called()

def test_program_checkout_invalid_slot(monkeypatch, created_sessions):
    _program_setup(monkeypatch, [])
    with pytest.raises(HTTPException) as exc:
        checkout.create_program_checkout_session(USER, "Family Program", "saturday_math_grade1_5")
    assert exc.value.status_code == 400

def test_program_checkout_insert_failure(monkeypatch, created_sessions):
    repo = _program_setup(monkeypatch, [])
    repo.create_pending_program_enrollment.side_effect = RuntimeError("db down")
    with pytest.raises(HTTPException) as exc:
        checkout.create_program_checkout_session(USER, "Family Program", "sunday_beginner")
    assert exc.value.detail == "Failed to initiate enrollment. Please try again."
    assert created_sessions == []

def test_program_checkout_stripe_failure_marks_row(monkeypatch):
    repo = _program_setup(monkeypatch, [])

    def _boom(**params):
        raise RuntimeError("stripe down")

    monkeypatch.setattr(checkout.stripe_client, "create_session", _boom)
    with pytest.raises(RuntimeError):
        checkout.create_program_checkout_session(USER, "Family Program", "sunday_beginner")
    repo.mark_program_enrollment_failed.assert_called_once_with("pe-1")

@pytest.mark.parametrize("price", [None, "abc", 0, -5])
def test_invalid_course_price(price):
    with pytest.raises(ValueError):
        checkout.course_line_item({"title": "X", "price": price})
