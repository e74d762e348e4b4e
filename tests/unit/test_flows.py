"""
Unit Tests for the Flow Manager
"""

import pytest

from conftest import make_flow, ordered_names

from screenflow.errors import FlowNotFoundError, InvalidRequestError
from screenflow.models import InsertScreenOptions


class TestFlowManager:
    """Tests for flow lifecycle operations."""

    @pytest.mark.asyncio
    async def test_create_get_list(self, engine):
        first = await engine.flows.create_flow("Onboarding", "Sign-up journey")
        second = await engine.flows.create_flow("Checkout")

        fetched = await engine.flows.get_flow(first.id)
        assert fetched.name == "Onboarding"
        assert fetched.description == "Sign-up journey"

        flows = await engine.flows.list_flows()
        assert {f.id for f in flows} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_get_missing_flow(self, engine):
        with pytest.raises(FlowNotFoundError):
            await engine.flows.get_flow("missing")

    @pytest.mark.asyncio
    async def test_update_flow(self, engine):
        flow = await engine.flows.create_flow("Draft", "Old")

        renamed = await engine.flows.update_flow(flow.id, name="Final")
        assert renamed.name == "Final"
        assert renamed.description == "Old"
        assert renamed.updated_at >= flow.updated_at

        described = await engine.flows.update_flow(flow.id, description="New")
        assert (described.name, described.description) == ("Final", "New")
        assert (await engine.flows.get_flow(flow.id)).description == "New"

    @pytest.mark.asyncio
    async def test_update_flow_rejects_blank_name(self, engine):
        flow = await engine.flows.create_flow("Draft")

        with pytest.raises(InvalidRequestError):
            await engine.flows.update_flow(flow.id, name="  ")

    @pytest.mark.asyncio
    async def test_update_missing_flow(self, engine):
        with pytest.raises(FlowNotFoundError):
            await engine.flows.update_flow("missing", name="X")

    @pytest.mark.asyncio
    async def test_delete_flow_cascades(self, engine):
        flow_id, _ = await make_flow(engine, ["A", "B"], edges=[("A", "B")])

        await engine.flows.delete_flow(flow_id)

        with pytest.raises(FlowNotFoundError):
            await engine.sequence.get_ordered_screens(flow_id)
        with pytest.raises(FlowNotFoundError):
            await engine.flows.delete_flow(flow_id)

    @pytest.mark.asyncio
    async def test_list_most_recently_updated_first(self, engine):
        older, _ = await make_flow(engine, ["A"])
        newer = await engine.flows.create_flow("Newer")

        # Touching the older flow moves it to the front
        await engine.sequence.insert_screen(older, InsertScreenOptions(screen_dsl={"title": "B"}))

        flows = await engine.flows.list_flows()
        assert [f.id for f in flows][:2] == [older, newer.id]

    @pytest.mark.asyncio
    async def test_clone_copies_screens_and_edges(self, engine):
        flow_id, ids = await make_flow(
            engine, ["A", "B", "C"], edges=[("A", "B"), ("A", "C"), ("B", "C")]
        )

        clone = await engine.flows.clone_flow(flow_id, "Copy")

        assert clone.id != flow_id
        assert clone.name == "Copy"
        assert await ordered_names(engine, clone.id) == ["A", "B", "C"]

        screens = await engine.sequence.get_ordered_screens(clone.id)
        clone_ids = {s.name: s.id for s in screens}
        assert not set(clone_ids.values()) & set(ids.values())

        graph = await engine.build_navigation_graph(clone.id)
        names = {v: k for k, v in clone_ids.items()}
        assert [(names[p.from_screen_id], names[p.to_screen_id]) for p in graph.navigation_paths] == [
            ("A", "B"), ("A", "C"), ("B", "C"),
        ]

    @pytest.mark.asyncio
    async def test_clone_with_reset_navigation(self, engine):
        flow_id, _ = await make_flow(engine, ["A", "B"], edges=[("A", "B")])

        clone = await engine.flows.clone_flow(flow_id, "Copy", reset_navigation=True)

        graph = await engine.build_navigation_graph(clone.id)
        assert len(graph.screens) == 2
        assert graph.navigation_paths == []

    @pytest.mark.asyncio
    async def test_clone_without_screens(self, engine):
        flow_id, _ = await make_flow(engine, ["A", "B"])

        clone = await engine.flows.clone_flow(
            flow_id, "Shell", new_description="Empty copy", include_screens=False
        )

        assert clone.description == "Empty copy"
        assert await engine.sequence.get_ordered_screens(clone.id) == []

    @pytest.mark.asyncio
    async def test_clone_missing_flow(self, engine):
        with pytest.raises(FlowNotFoundError):
            await engine.flows.clone_flow("missing", "Copy")

    @pytest.mark.asyncio
    async def test_stats(self, engine):
        flow_id, ids = await make_flow(
            engine, ["A", "B", "C"], edges=[("A", "B"), ("A", "C")]
        )

        stats = await engine.flows.get_flow_stats(flow_id)

        assert stats.screen_count == 3
        assert stats.edge_count == 2
        assert stats.branch_point_count == 1
        assert stats.entry_screen_id == ids["A"]
        assert stats.valid is True
