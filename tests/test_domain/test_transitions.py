"""Tests for the transition table registry."""

from __future__ import annotations

import dataclasses
from types import MappingProxyType

import pytest

from marketplace_core.domain.enums import ResourceType
from marketplace_core.domain.exceptions import (
    TransitionTableError,
    UnknownResourceTypeError,
)
from marketplace_core.domain.transitions import (
    TRANSITION_TABLES,
    TransitionTable,
    get_transition_table,
)

EXPECTED_ESCROW = {
    "pending": {"paid", "cancelled"},
    "paid": {"released", "refunded", "disputed"},
    "disputed": {"released", "refunded"},
    "released": set(),
    "refunded": set(),
    "cancelled": set(),
}

EXPECTED_TASK = {
    "pending": {"published", "cancelled"},
    "published": {"claimed", "cancelled"},
    "claimed": {"accepted", "published", "cancelled"},
    "accepted": {"in_progress", "claimed", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": {"expired", "cancelled"},
    "expired": set(),
    "cancelled": set(),
}


def _as_sets(table: TransitionTable) -> dict[str, set[str]]:
    return {status: set(targets) for status, targets in table.allowed_next.items()}


class TestRegisteredTables:
    def test_every_resource_type_is_registered(self) -> None:
        assert set(TRANSITION_TABLES) == set(ResourceType)

    def test_escrow_table(self) -> None:
        table = get_transition_table("escrow")
        assert _as_sets(table) == EXPECTED_ESCROW
        assert table.terminal == {"released", "refunded", "cancelled"}
        assert table.initial == "pending"

    def test_inquiry_table(self) -> None:
        table = get_transition_table("inquiry")
        assert table.allowed_targets("pending") == {"offer_received", "closed"}
        assert table.allowed_targets("offer_received") == {"accepted", "pending"}
        assert table.allowed_targets("accepted") == {"completed", "closed"}
        assert table.terminal == {"completed", "closed"}

    def test_offer_table(self) -> None:
        table = get_transition_table("offer")
        assert table.allowed_targets("poslana") == {"sprejeta", "zavrnjena"}
        assert table.terminal == {"sprejeta", "zavrnjena"}

    def test_task_table(self) -> None:
        table = get_transition_table("task")
        assert _as_sets(table) == EXPECTED_TASK
        assert table.terminal == {"expired", "cancelled"}

    def test_accepts_enum_member(self) -> None:
        assert get_transition_table(ResourceType.TASK).resource_type == "task"

    @pytest.mark.parametrize("resource_type", ["invoice", "", "ESCROW"])
    def test_unknown_resource_type(self, resource_type: str) -> None:
        with pytest.raises(UnknownResourceTypeError) as exc_info:
            get_transition_table(resource_type)
        assert exc_info.value.code == 400
        assert "Unknown resource type" in exc_info.value.error


class TestTableShape:
    @pytest.mark.parametrize("resource_type", list(ResourceType))
    def test_terminal_statuses_have_no_edges(self, resource_type: ResourceType) -> None:
        table = TRANSITION_TABLES[resource_type]
        for status in table.terminal:
            assert table.allowed_targets(status) == frozenset()

    @pytest.mark.parametrize("resource_type", list(ResourceType))
    def test_open_statuses_have_an_exit(self, resource_type: ResourceType) -> None:
        table = TRANSITION_TABLES[resource_type]
        for status in table.statuses - table.terminal:
            assert table.allowed_targets(status)

    @pytest.mark.parametrize("resource_type", list(ResourceType))
    def test_edges_stay_inside_the_table(self, resource_type: ResourceType) -> None:
        table = TRANSITION_TABLES[resource_type]
        for targets in table.allowed_next.values():
            assert targets <= table.statuses

    def test_is_allowed_refuses_from_terminal(self) -> None:
        table = get_transition_table("escrow")
        assert table.is_allowed("paid", "released")
        assert not table.is_allowed("released", "refunded")
        assert not table.is_allowed("pending", "released")

    def test_unknown_status_has_no_targets(self) -> None:
        assert get_transition_table("escrow").allowed_targets("active") == frozenset()


class TestImmutability:
    def test_registry_is_read_only(self) -> None:
        assert isinstance(TRANSITION_TABLES, MappingProxyType)
        with pytest.raises(TypeError):
            TRANSITION_TABLES[ResourceType.ESCROW] = None  # type: ignore[index]

    def test_table_is_frozen(self) -> None:
        table = get_transition_table("escrow")
        with pytest.raises(dataclasses.FrozenInstanceError):
            table.terminal = frozenset()  # type: ignore[misc]
        with pytest.raises(TypeError):
            table.allowed_next["released"] = frozenset({"pending"})  # type: ignore[index]


class TestValidate:
    def test_detects_inconsistent_table(self) -> None:
        table = TransitionTable(
            resource_type="escrow",
            initial="pending",
            allowed_next=MappingProxyType(
                {
                    "pending": frozenset({"paid", "lost"}),
                    "paid": frozenset(),
                    "released": frozenset({"pending"}),
                }
            ),
            terminal=frozenset({"released"}),
        )
        with pytest.raises(TransitionTableError) as exc_info:
            table.validate()

        problems = exc_info.value.problems
        assert any("'released' has outgoing edges" in p for p in problems)
        assert any("'paid' has no outgoing edge" in p for p in problems)
        assert any("'lost'" in p for p in problems)

    def test_registered_tables_validate(self) -> None:
        for table in TRANSITION_TABLES.values():
            table.validate()
