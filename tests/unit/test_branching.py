"""
Unit Tests for the Branch Manager
"""

import pytest

from conftest import make_flow

from screenflow.errors import (
    AmbiguousBranchError,
    BranchNotFoundError,
    DuplicateBranchError,
    FlowNotFoundError,
    InvalidRequestError,
    ScreenNotFoundError,
)
from screenflow.models import BranchConfig, BranchFilter, BranchPatch


# =============================================================================
# Create / Read
# =============================================================================


class TestCreateBranch:
    """Tests for creating and reading branches."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C"])

        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], label="Yes"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["C"], label="No"))

        branches = await engine.branches.get_branches_from_screen(flow_id, ids["A"])
        assert [b.to_screen_id for b in branches] == [ids["B"], ids["C"]]
        assert [b.order for b in branches] == [0, 1]
        assert branches[0].label == "Yes"

        incoming = await engine.branches.get_branches_to_screen(flow_id, ids["C"])
        assert [b.from_screen_id for b in incoming] == [ids["A"]]

    @pytest.mark.asyncio
    async def test_default_trigger_applied(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])

        branch = await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"]))

        assert branch.trigger == "button-click"

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])
        config = BranchConfig(to_screen_id=ids["B"], condition="ok", label="Next")

        await engine.create_branch(flow_id, ids["A"], config)
        with pytest.raises(DuplicateBranchError):
            await engine.create_branch(flow_id, ids["A"], config)

        assert await engine.branches.get_branch_count(flow_id, ids["A"]) == 1

    @pytest.mark.asyncio
    async def test_empty_strings_count_as_absent(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])

        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"]))
        with pytest.raises(DuplicateBranchError):
            await engine.create_branch(
                flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="", label="")
            )

    @pytest.mark.asyncio
    async def test_same_target_other_condition_allowed(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])

        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"]))
        await engine.create_branch(
            flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="premium")
        )

        assert await engine.branches.get_branch_count(flow_id, ids["A"]) == 2

    @pytest.mark.asyncio
    async def test_screen_from_other_flow_rejected(self, engine):
        flow_id, ids = await make_flow(engine, ["A"])
        _, other = await make_flow(engine, ["X"])

        with pytest.raises(ScreenNotFoundError):
            await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=other["X"]))

    @pytest.mark.asyncio
    async def test_unknown_flow(self, engine):
        with pytest.raises(FlowNotFoundError):
            await engine.branches.get_branches_from_screen("missing", "A")


# =============================================================================
# Update
# =============================================================================


class TestUpdateBranch:
    """Tests for updating branch metadata."""

    @pytest.mark.asyncio
    async def test_update_label_keeps_other_fields(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])
        await engine.create_branch(
            flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="ok", trigger="tap")
        )

        branch = await engine.update_branch(
            flow_id, ids["A"], ids["B"], BranchPatch(label="Continue")
        )

        assert branch.label == "Continue"
        assert branch.condition == "ok"
        assert branch.trigger == "tap"

    @pytest.mark.asyncio
    async def test_empty_string_clears_field(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])
        await engine.create_branch(
            flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="ok")
        )

        branch = await engine.update_branch(
            flow_id, ids["A"], ids["B"], BranchPatch(condition="")
        )

        assert branch.condition is None

    @pytest.mark.asyncio
    async def test_ambiguous_match_rejected(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="x"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="y"))

        with pytest.raises(AmbiguousBranchError):
            await engine.update_branch(flow_id, ids["A"], ids["B"], BranchPatch(label="L"))

        branch = await engine.update_branch(
            flow_id, ids["A"], ids["B"], BranchPatch(label="L"), match_condition="y"
        )
        assert branch.condition == "y"
        assert branch.label == "L"
        assert branch.order == 1

    @pytest.mark.asyncio
    async def test_no_match(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])

        with pytest.raises(BranchNotFoundError):
            await engine.update_branch(flow_id, ids["A"], ids["B"], BranchPatch(label="L"))

    @pytest.mark.asyncio
    async def test_update_into_duplicate_rejected(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="x"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="y"))

        with pytest.raises(DuplicateBranchError):
            await engine.update_branch(
                flow_id, ids["A"], ids["B"], BranchPatch(condition="x"), match_condition="y"
            )

        branches = await engine.branches.get_branches_from_screen(flow_id, ids["A"])
        assert [b.condition for b in branches] == ["x", "y"]


# =============================================================================
# Delete
# =============================================================================


class TestDeleteBranch:
    """Tests for filtered branch deletion."""

    @pytest.mark.asyncio
    async def test_delete_all_matching(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C"])
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="x"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="y"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["C"], condition="x"))

        deleted = await engine.delete_branch(flow_id, ids["A"], BranchFilter(to_screen_id=ids["B"]))

        assert deleted == 2
        branches = await engine.branches.get_branches_from_screen(flow_id, ids["A"])
        assert [b.to_screen_id for b in branches] == [ids["C"]]

    @pytest.mark.asyncio
    async def test_delete_by_condition_and_label(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C"])
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="x", label="one"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["C"], condition="x", label="two"))

        deleted = await engine.delete_branch(
            flow_id, ids["A"], BranchFilter(condition="x", label="two")
        )

        assert deleted == 1
        assert await engine.branches.get_branch_count(flow_id, ids["A"]) == 1

    @pytest.mark.asyncio
    async def test_delete_last_branch_leaves_dead_end(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"], edges=[("A", "B")])

        await engine.delete_branch(flow_id, ids["A"], BranchFilter(to_screen_id=ids["B"]))

        assert await engine.branches.get_branch_count(flow_id, ids["A"]) == 0

    @pytest.mark.asyncio
    async def test_no_match(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])

        with pytest.raises(BranchNotFoundError):
            await engine.delete_branch(flow_id, ids["A"], BranchFilter(label="nope"))

    def test_filter_requires_a_field(self):
        with pytest.raises(InvalidRequestError):
            BranchFilter()

        with pytest.raises(InvalidRequestError):
            BranchFilter(to_screen_id="", condition="")


# =============================================================================
# Aggregate Queries
# =============================================================================


class TestBranchQueries:
    """Tests for branch counts and branch points."""

    @pytest.mark.asyncio
    async def test_has_branches_needs_more_than_one(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C"], edges=[("A", "B")])

        assert await engine.branches.has_branches(flow_id, ids["A"]) is False
        assert await engine.branches.get_branch_count(flow_id, ids["A"]) == 1

        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["C"]))
        assert await engine.branches.has_branches(flow_id, ids["A"]) is True

    @pytest.mark.asyncio
    async def test_find_branch_points_by_screen_order(self, engine):
        flow_id, ids = await make_flow(
            engine,
            ["A", "B", "C", "D"],
            edges=[("C", "D"), ("C", "A"), ("A", "B"), ("A", "C"), ("B", "C")],
        )

        points = await engine.find_branch_points(flow_id)

        assert [p.screen_id for p in points] == [ids["A"], ids["C"]]
        assert points[1].branch_count == 2
        assert [b.to_screen_id for b in points[1].branches] == [ids["D"], ids["A"]]
