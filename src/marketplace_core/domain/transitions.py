"""Transition Table Registry.

Static, read-only per-resource-type maps from current status to the set of
allowed next statuses, plus the set of terminal statuses. Tables are derived
once from the lifecycle declarations in domain/lifecycles.py, validated, and
shared by every guard invocation without locking.

Usage:
    table = get_transition_table("escrow")
    table.is_terminal("released")          # True
    table.allowed_targets("paid")          # frozenset({"released", "refunded", "disputed"})
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from marketplace_core.domain.enums import ResourceType
from marketplace_core.domain.exceptions import (
    TransitionTableError,
    UnknownResourceTypeError,
)
from marketplace_core.domain.lifecycles import (
    EscrowLifecycle,
    InquiryLifecycle,
    OfferLifecycle,
    TaskLifecycle,
)

if TYPE_CHECKING:
    from marketplace_core.domain.lifecycles import ResourceLifecycle


@dataclass(frozen=True)
class TransitionTable:
    """Immutable transition graph of one resource type.

    Attributes:
        resource_type: The ResourceType value this table guards.
        initial: Status a new resource starts in.
        allowed_next: Current status -> statuses it may move to.
        terminal: Statuses from which no transition is ever permitted.
    """

    resource_type: str
    initial: str
    allowed_next: Mapping[str, frozenset[str]]
    terminal: frozenset[str]

    @classmethod
    def from_lifecycle(
        cls, resource_type: str, lifecycle: type[ResourceLifecycle]
    ) -> TransitionTable:
        """Build the table from a lifecycle state machine class."""
        allowed_next = {
            state.value: frozenset(
                t.target.value for t in state.transitions if t.target is not None
            )
            for state in lifecycle.states
        }
        terminal = frozenset(state.value for state in lifecycle.states if state.final)
        return cls(
            resource_type=resource_type,
            initial=lifecycle.initial_state.value,
            allowed_next=MappingProxyType(allowed_next),
            terminal=terminal,
        )

    @property
    def statuses(self) -> frozenset[str]:
        return frozenset(self.allowed_next)

    def is_terminal(self, status: str) -> bool:
        return status in self.terminal

    def allowed_targets(self, status: str) -> frozenset[str]:
        """Statuses reachable in one step. Empty for terminal or unknown statuses."""
        return self.allowed_next.get(status, frozenset())

    def is_allowed(self, current_status: str, target_status: str) -> bool:
        if self.is_terminal(current_status):
            return False
        return target_status in self.allowed_targets(current_status)

    def validate(self) -> None:
        """Check the table's internal consistency.

        Every non-terminal status needs at least one outgoing edge, terminal
        statuses have none, and every edge points at a known status.

        Raises:
            TransitionTableError: listing every problem found.
        """
        problems: list[str] = []
        known = self.statuses

        if self.initial not in known:
            problems.append(f"initial status '{self.initial}' is not declared")

        for status in sorted(self.terminal - known):
            problems.append(f"terminal status '{status}' is not declared")

        for status, targets in sorted(self.allowed_next.items()):
            if status in self.terminal and targets:
                problems.append(
                    f"terminal status '{status}' has outgoing edges {sorted(targets)}"
                )
            if status not in self.terminal and not targets:
                problems.append(f"non-terminal status '{status}' has no outgoing edge")
            for target in sorted(targets - known):
                problems.append(f"edge '{status}' -> '{target}' targets an unknown status")

        if problems:
            raise TransitionTableError(self.resource_type, problems)


LIFECYCLES: Mapping[ResourceType, type[ResourceLifecycle]] = MappingProxyType(
    {
        ResourceType.ESCROW: EscrowLifecycle,
        ResourceType.INQUIRY: InquiryLifecycle,
        ResourceType.OFFER: OfferLifecycle,
        ResourceType.TASK: TaskLifecycle,
    }
)


def build_registry(
    lifecycles: Mapping[ResourceType, type[ResourceLifecycle]],
) -> Mapping[ResourceType, TransitionTable]:
    """Derive and validate one TransitionTable per resource type."""
    tables = {
        resource_type: TransitionTable.from_lifecycle(resource_type.value, lifecycle)
        for resource_type, lifecycle in lifecycles.items()
    }
    for table in tables.values():
        table.validate()
    return MappingProxyType(tables)


TRANSITION_TABLES: Mapping[ResourceType, TransitionTable] = build_registry(LIFECYCLES)


def get_transition_table(resource_type: str) -> TransitionTable:
    """Return the table registered for a resource type.

    Raises:
        UnknownResourceTypeError: If the type has no registered table.
    """
    try:
        key = ResourceType(resource_type)
    except ValueError as err:
        raise UnknownResourceTypeError(str(resource_type)) from err
    table = TRANSITION_TABLES.get(key)
    if table is None:
        raise UnknownResourceTypeError(key.value)
    return table
