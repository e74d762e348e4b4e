"""
Unit Tests for the Branch Merger
"""

import pytest

from conftest import make_flow

from screenflow.errors import InvalidRequestError, ScreenNotFoundError
from screenflow.models import BranchConfig, BranchRef


async def edge_set(engine, flow_id, screen_id):
    branches = await engine.branches.get_branches_from_screen(flow_id, screen_id)
    return [(b.to_screen_id, b.condition, b.label) for b in branches]


class TestMergeBranches:
    """Tests for BranchMerger.merge_branches."""

    @pytest.mark.asyncio
    async def test_merge_into_existing_branch(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C", "D"])
        for target, condition in (("B", "free"), ("C", "trial"), ("D", "paid")):
            await engine.create_branch(
                flow_id, ids["A"], BranchConfig(to_screen_id=ids[target], condition=condition)
            )

        result = await engine.merge_branches(
            flow_id,
            ids["A"],
            BranchRef(to_screen_id=ids["B"], condition="free"),
            [
                BranchRef(to_screen_id=ids["C"], condition="trial"),
                BranchRef(to_screen_id=ids["D"], condition="paid"),
            ],
            keep_label="Start",
        )

        assert result.kept_created is False
        assert result.removed_edge_count == 2
        assert len(result.merged) == 2
        assert result.unmatched == []
        assert await edge_set(engine, flow_id, ids["A"]) == [(ids["B"], "free", "Start")]

        # Merged-away targets stay in the flow
        screens = await engine.sequence.get_ordered_screens(flow_id)
        assert len(screens) == 4

    @pytest.mark.asyncio
    async def test_kept_branch_created_when_missing(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C"], edges=[("A", "B")])

        result = await engine.merge_branches(
            flow_id,
            ids["A"],
            BranchRef(to_screen_id=ids["C"]),
            [BranchRef(to_screen_id=ids["B"])],
        )

        assert result.kept_created is True
        assert result.kept.trigger == "button-click"
        assert await edge_set(engine, flow_id, ids["A"]) == [(ids["C"], None, None)]

    @pytest.mark.asyncio
    async def test_unmatched_entries_reported(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C"])
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"]))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["C"], condition="x"))

        result = await engine.merge_branches(
            flow_id,
            ids["A"],
            BranchRef(to_screen_id=ids["B"]),
            [
                BranchRef(to_screen_id=ids["C"], condition="x"),
                BranchRef(to_screen_id=ids["C"], condition="missing"),
            ],
        )

        assert [r.condition for r in result.merged] == ["x"]
        assert [r.condition for r in result.unmatched] == ["missing"]
        assert await edge_set(engine, flow_id, ids["A"]) == [(ids["B"], None, None)]

    @pytest.mark.asyncio
    async def test_kept_target_inside_merge_list_survives(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C"])
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], condition="x"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["C"], condition="y"))

        result = await engine.merge_branches(
            flow_id,
            ids["A"],
            BranchRef(to_screen_id=ids["B"], condition="x"),
            [
                BranchRef(to_screen_id=ids["B"], condition="x"),
                BranchRef(to_screen_id=ids["C"], condition="y"),
            ],
            keep_label="Merged",
        )

        assert result.kept_created is False
        assert result.removed_edge_count == 1
        assert await edge_set(engine, flow_id, ids["A"]) == [(ids["B"], "x", "Merged")]

    @pytest.mark.asyncio
    async def test_merge_twice_is_idempotent(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B", "C", "D"])
        for target, condition in (("B", "free"), ("C", "trial"), ("D", "paid")):
            await engine.create_branch(
                flow_id, ids["A"], BranchConfig(to_screen_id=ids[target], condition=condition)
            )

        args = (
            flow_id,
            ids["A"],
            BranchRef(to_screen_id=ids["D"], condition="paid"),
            [
                BranchRef(to_screen_id=ids["B"], condition="free"),
                BranchRef(to_screen_id=ids["C"], condition="trial"),
            ],
        )

        await engine.merge_branches(*args, keep_label="Plan")
        once = await edge_set(engine, flow_id, ids["A"])

        second = await engine.merge_branches(*args, keep_label="Plan")
        twice = await edge_set(engine, flow_id, ids["A"])

        assert once == twice == [(ids["D"], "paid", "Plan")]
        assert second.removed_edge_count == 0
        assert len(second.unmatched) == 2

    @pytest.mark.asyncio
    async def test_label_match_preferred_among_equal_branches(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"])
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], label="first"))
        await engine.create_branch(flow_id, ids["A"], BranchConfig(to_screen_id=ids["B"], label="second"))

        result = await engine.merge_branches(
            flow_id,
            ids["A"],
            BranchRef(to_screen_id=ids["B"]),
            [BranchRef(to_screen_id=ids["B"])],
            keep_label="second",
        )

        assert result.kept.label == "second"
        assert result.kept.order == 0
        assert await edge_set(engine, flow_id, ids["A"]) == [(ids["B"], None, "second")]

    @pytest.mark.asyncio
    async def test_empty_merge_list_rejected(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"], edges=[("A", "B")])

        with pytest.raises(InvalidRequestError):
            await engine.merge_branches(flow_id, ids["A"], BranchRef(to_screen_id=ids["B"]), [])

    @pytest.mark.asyncio
    async def test_unknown_kept_target(self, engine):
        flow_id, ids = await make_flow(engine, ["A", "B"], edges=[("A", "B")])

        with pytest.raises(ScreenNotFoundError):
            await engine.merge_branches(
                flow_id,
                ids["A"],
                BranchRef(to_screen_id="missing"),
                [BranchRef(to_screen_id=ids["B"])],
            )

        # Nothing was applied
        assert await edge_set(engine, flow_id, ids["A"]) == [(ids["B"], None, None)]
