"""Tests for the lifecycle state machines.

These tests verify that:
    1. The happy paths of every resource type can be fired event by event.
    2. Illegal events raise TransitionNotAllowed.
    3. Terminal statuses expose no events.
    4. Unknown statuses are refused at construction.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from marketplace_core.domain.lifecycles import (
    EscrowLifecycle,
    InquiryLifecycle,
    OfferLifecycle,
    TaskLifecycle,
)


class TestEscrowLifecycle:
    def test_starts_pending(self) -> None:
        assert EscrowLifecycle().status == "pending"

    def test_pay_then_release(self) -> None:
        sm = EscrowLifecycle("pending")
        sm.pay()
        assert sm.status == "paid"
        sm.release()
        assert sm.status == "released"

    def test_dispute_resolved_by_refund(self) -> None:
        sm = EscrowLifecycle("paid")
        sm.dispute()
        assert sm.status == "disputed"
        sm.refund()
        assert sm.status == "refunded"

    def test_cannot_release_unpaid(self) -> None:
        sm = EscrowLifecycle("pending")
        with pytest.raises(TransitionNotAllowed):
            sm.release()

    @pytest.mark.parametrize("status", ["released", "refunded", "cancelled"])
    def test_terminal_statuses_have_no_events(self, status: str) -> None:
        assert EscrowLifecycle(status).get_allowed_events() == []

    def test_allowed_events_from_paid(self) -> None:
        allowed = EscrowLifecycle("paid").get_allowed_events()
        assert set(allowed) == {"release", "refund", "dispute"}


class TestInquiryLifecycle:
    def test_offer_accepted_and_completed(self) -> None:
        sm = InquiryLifecycle()
        sm.receive_offer()
        sm.accept_offer()
        sm.complete()
        assert sm.status == "completed"

    def test_reopen_for_more_offers(self) -> None:
        sm = InquiryLifecycle("offer_received")
        sm.reopen()
        assert sm.status == "pending"

    def test_cannot_close_with_open_offer(self) -> None:
        sm = InquiryLifecycle("offer_received")
        with pytest.raises(TransitionNotAllowed):
            sm.close()


class TestOfferLifecycle:
    def test_accept(self) -> None:
        sm = OfferLifecycle()
        assert sm.status == "poslana"
        sm.accept()
        assert sm.status == "sprejeta"

    def test_reject(self) -> None:
        sm = OfferLifecycle("poslana")
        sm.reject()
        assert sm.status == "zavrnjena"


class TestTaskLifecycle:
    def test_full_lifecycle(self) -> None:
        sm = TaskLifecycle()
        sm.publish()
        sm.claim()
        sm.accept()
        sm.start()
        sm.complete()
        sm.expire()
        assert sm.status == "expired"

    def test_claim_released_back_to_board(self) -> None:
        sm = TaskLifecycle("claimed")
        sm.release_claim()
        assert sm.status == "published"

    @pytest.mark.parametrize(
        "status",
        ["pending", "published", "claimed", "accepted", "in_progress", "completed"],
    )
    def test_cancel_from_every_open_status(self, status: str) -> None:
        sm = TaskLifecycle(status)
        sm.cancel()
        assert sm.status == "cancelled"

    def test_cannot_start_unclaimed(self) -> None:
        sm = TaskLifecycle("published")
        with pytest.raises(TransitionNotAllowed):
            sm.start()


class TestConstruction:
    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            EscrowLifecycle("active")
