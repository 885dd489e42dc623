"""Resource lifecycle declarations.

Uses python-statemachine to declare the legal status graph of every guarded
resource type. Terminal statuses are declared ``final=True``; the library
refuses to build a machine whose final states have outgoing transitions or
whose non-final states are trap states, so an inconsistent lifecycle fails at
import time.

The guard never fires these machines; it reads the derived, immutable
TransitionTable (see domain/transitions.py). Firing events is still available
for workflow code that prefers named events over raw target statuses.

Escrow:
    pending   -> paid, cancelled
    paid      -> released, refunded, disputed
    disputed  -> released, refunded          (admin dispute resolution)
    released, refunded, cancelled            (terminal)

Inquiry:
    pending         -> offer_received, closed
    offer_received  -> accepted, pending     (re-open for more offers)
    accepted        -> completed, closed
    completed, closed                        (terminal)

Offer:
    poslana (sent)  -> sprejeta (accepted), zavrnjena (rejected)
    sprejeta, zavrnjena                      (terminal)

Task:
    pending      -> published, cancelled
    published    -> claimed, cancelled
    claimed      -> accepted, published, cancelled
    accepted     -> in_progress, claimed, cancelled
    in_progress  -> completed, cancelled
    completed    -> expired, cancelled
    expired, cancelled                       (terminal)
"""

from __future__ import annotations

from statemachine import State, StateMachine


class ResourceLifecycle(StateMachine):
    """Common behaviour of all lifecycle machines.

    Usage:
        sm = EscrowLifecycle(current_status="paid")
        sm.release()
        sm.status  # "released"
    """

    def __init__(self, current_status: str | None = None) -> None:
        """Initialize the machine at a given status.

        Args:
            current_status: A status value of this lifecycle. Defaults to the
                initial status.
        """
        if current_status is not None:
            valid_values = {s.value for s in self.states}
            if current_status not in valid_values:
                valid = ", ".join(sorted(valid_values))
                raise ValueError(
                    f"Unknown status '{current_status}'. Valid states: {valid}"
                )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current status value."""
        return str(self.current_state_value)

    def get_allowed_events(self) -> list[str]:
        """Return the event names that can fire from the current status."""
        return [event.id for event in self.allowed_events]


class EscrowLifecycle(ResourceLifecycle):
    """Held customer payment awaiting release to a partner or refund."""

    pending = State("Pending", initial=True)
    paid = State("Paid")
    disputed = State("Disputed")
    released = State("Released", final=True)
    refunded = State("Refunded", final=True)
    cancelled = State("Cancelled", final=True)

    pay = pending.to(paid)
    cancel = pending.to(cancelled)
    dispute = paid.to(disputed)
    release = paid.to(released) | disputed.to(released)
    refund = paid.to(refunded) | disputed.to(refunded)


class InquiryLifecycle(ResourceLifecycle):
    """Customer request for a service, answered by craftworker offers."""

    pending = State("Pending", initial=True)
    offer_received = State("Offer received")
    accepted = State("Accepted")
    completed = State("Completed", final=True)
    closed = State("Closed", final=True)

    receive_offer = pending.to(offer_received)
    reopen = offer_received.to(pending)
    accept_offer = offer_received.to(accepted)
    complete = accepted.to(completed)
    close = pending.to(closed) | accepted.to(closed)


class OfferLifecycle(ResourceLifecycle):
    """Craftworker offer on an inquiry (poslana / sprejeta / zavrnjena)."""

    poslana = State("Sent", initial=True)
    sprejeta = State("Accepted", final=True)
    zavrnjena = State("Rejected", final=True)

    accept = poslana.to(sprejeta)
    reject = poslana.to(zavrnjena)


class TaskLifecycle(ResourceLifecycle):
    """Dispatchable task claimed and executed by a worker."""

    pending = State("Pending", initial=True)
    published = State("Published")
    claimed = State("Claimed")
    accepted = State("Accepted")
    in_progress = State("In progress")
    completed = State("Completed")
    expired = State("Expired", final=True)
    cancelled = State("Cancelled", final=True)

    publish = pending.to(published)
    claim = published.to(claimed)
    release_claim = claimed.to(published)
    accept = claimed.to(accepted)
    revert_acceptance = accepted.to(claimed)
    start = accepted.to(in_progress)
    complete = in_progress.to(completed)
    expire = completed.to(expired)
    cancel = (
        pending.to(cancelled)
        | published.to(cancelled)
        | claimed.to(cancelled)
        | accepted.to(cancelled)
        | in_progress.to(cancelled)
        | completed.to(cancelled)
    )
