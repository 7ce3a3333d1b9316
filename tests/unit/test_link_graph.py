from pathlib import Path

import pytest

from linkgraph.models.enrichment import CustomEdge, NodeEnrichment
from linkgraph.models.filters import LinkFilters
from linkgraph.services.builtin_providers import register_builtin_providers
from linkgraph.services.config import AppConfig
from linkgraph.services.database import DatabaseService
from linkgraph.services.enrichment import EnrichmentProvider, EnrichmentRegistry
from linkgraph.services.link_graph import LinkGraphService


def _assert_consistent(graph) -> None:
    node_ids = {node.id for node in graph.nodes}
    assert len(node_ids) == len(graph.nodes)
    for edge in graph.edges:
        assert edge.source in node_ids
        assert edge.target in node_ids


@pytest.mark.asyncio
async def test_isolated_center_yields_single_node(graph_service, corpus) -> None:
    corpus.add_file("/n/a.org")

    for direction in ("both", "outgoing", "incoming"):
        graph = await graph_service.build_graph(
            "/n/a.org", depth=1, direction=direction, max_nodes=100
        )

        assert len(graph.nodes) == 1
        assert graph.nodes[0].is_center
        assert graph.nodes[0].level == 0
        assert graph.edges == []
        assert graph.truncated is False


@pytest.mark.asyncio
async def test_single_outgoing_link(graph_service, corpus) -> None:
    corpus.add_file("/n/a.org")
    corpus.add_file("/n/b.org")
    corpus.add_link("/n/a.org", "/n/b.org")

    graph = await graph_service.build_graph("/n/a.org", depth=1, direction="outgoing")

    assert [(node.id, node.level) for node in graph.nodes] == [("/n/a.org", 0), ("/n/b.org", 1)]
    assert len(graph.edges) == 1
    assert graph.edges[0].key == ("/n/a.org", "/n/b.org")
    assert graph.edges[0].count == 1


@pytest.mark.asyncio
async def test_duplicate_links_collapse(graph_service, corpus) -> None:
    corpus.add_file("/n/a.org")
    corpus.add_file("/n/b.org")
    corpus.add_link("/n/a.org", "/n/b.org")
    corpus.add_link("/n/a.org", "/n/b.org")

    graph = await graph_service.build_graph("/n/a.org", depth=1)

    assert len(graph.edges) == 1
    assert graph.edges[0].count == 2
    assert graph.edges[0].title == "2 link(s)"


@pytest.mark.asyncio
async def test_truncation_keeps_most_relevant_nodes(graph_service, corpus) -> None:
    corpus.add_file("/n/center.org")
    for index in range(150):
        target = f"/n/t{index:03d}.org"
        corpus.add_file(target)
        corpus.add_link("/n/center.org", target)

    graph = await graph_service.build_graph("/n/center.org", depth=1, max_nodes=50)

    assert len(graph.nodes) == 50
    assert graph.truncated is True
    assert graph.total_edges == 150
    assert len(graph.edges) == 49
    assert graph.nodes[0].is_center
    _assert_consistent(graph)


@pytest.mark.asyncio
async def test_exclude_done_prunes_through_intermediate(graph_service, corpus) -> None:
    for name in ("a", "b", "c"):
        corpus.add_file(f"/n/{name}.org")
    done = corpus.add_heading("/n/a.org", todo_state="DONE")
    corpus.add_link("/n/a.org", "/n/b.org", heading_id=done)
    corpus.add_link("/n/b.org", "/n/c.org")

    unfiltered = await graph_service.build_graph("/n/a.org", depth=2, direction="outgoing")
    filtered = await graph_service.build_graph(
        "/n/a.org", depth=2, direction="outgoing", filters=LinkFilters(exclude_done=True)
    )

    assert {node.id for node in unfiltered.nodes} == {"/n/a.org", "/n/b.org", "/n/c.org"}
    assert [node.id for node in filtered.nodes] == ["/n/a.org"]
    assert filtered.edges == []


@pytest.mark.asyncio
async def test_provider_filter_removes_discovered_node(graph_service, registry, corpus) -> None:
    for path in ("/n/a.org", "/n/b.org", "/n/excluded.org"):
        corpus.add_file(path)
    corpus.add_link("/n/a.org", "/n/b.org")
    corpus.add_link("/n/a.org", "/n/excluded.org")
    registry.register(
        EnrichmentProvider(id="hide", filter_node=lambda node, ctx: "excluded" not in node.id)
    )

    graph = await graph_service.build_graph("/n/a.org", depth=1)

    assert {node.id for node in graph.nodes} == {"/n/a.org", "/n/b.org"}
    assert all("excluded" not in edge.target for edge in graph.edges)
    _assert_consistent(graph)


@pytest.mark.asyncio
async def test_enrichment_is_folded_into_nodes_and_edges(graph_service, registry, corpus) -> None:
    corpus.add_file("/n/a.org")
    corpus.add_file("/n/b.org")
    corpus.add_link("/n/a.org", "/n/b.org")
    registry.register(
        EnrichmentProvider(
            id="style",
            enrich_node=lambda node, ctx: NodeEnrichment(
                color="#fff", tooltip="custom", properties={"score": 1}
            ),
            enrich_edge=lambda edge, ctx: {"label": "refers to", "width": 3},
            get_custom_edges=lambda node_id, ctx: (
                [CustomEdge(source="/n/b.org", target="/n/a.org", type="related", label="rel")]
                if node_id == "/n/b.org"
                else []
            ),
        )
    )

    graph = await graph_service.build_graph("/n/a.org", depth=1)

    center = graph.nodes[0]
    assert center.title == "custom"
    assert center.metadata["enriched_color"] == "#fff"
    assert center.metadata["score"] == 1

    real, custom = graph.edges
    assert real.title == "refers to"
    assert real.metadata["enriched_width"] == 3
    assert custom.id == "custom-/n/b.org-/n/a.org-related"
    assert custom.metadata["is_custom"] is True
    assert custom.title == "rel"


@pytest.mark.asyncio
async def test_custom_edges_to_unknown_nodes_are_dropped(graph_service, registry, corpus) -> None:
    corpus.add_file("/n/a.org")
    registry.register(
        EnrichmentProvider(
            id="dangling",
            get_custom_edges=lambda node_id, ctx: [{"from": node_id, "to": "/n/nowhere.org", "type": "x"}],
        )
    )

    graph = await graph_service.build_graph("/n/a.org", depth=1)

    assert graph.edges == []
    assert graph.total_edges == 1


@pytest.mark.asyncio
async def test_repeated_custom_edges_are_emitted_once(graph_service, registry, corpus) -> None:
    corpus.add_file("/n/a.org")
    corpus.add_file("/n/b.org")
    corpus.add_link("/n/a.org", "/n/b.org")
    registry.register(
        EnrichmentProvider(
            id="first",
            priority=5,
            get_custom_edges=lambda node_id, ctx: [
                CustomEdge(source="/n/b.org", target="/n/a.org", type="related", label="first")
            ],
        )
    )
    registry.register(
        EnrichmentProvider(
            id="second",
            get_custom_edges=lambda node_id, ctx: [
                {"from": "/n/b.org", "to": "/n/a.org", "type": "related", "label": "second"},
                {"from": "/n/b.org", "to": "/n/a.org", "type": "blocks"},
            ],
        )
    )

    graph = await graph_service.build_graph("/n/a.org", depth=1)

    edge_ids = [edge.id for edge in graph.edges]
    assert len(edge_ids) == len(set(edge_ids))
    assert edge_ids == [
        "/n/a.org|/n/b.org|file",
        "custom-/n/b.org-/n/a.org-related",
        "custom-/n/b.org-/n/a.org-blocks",
    ]
    assert graph.edges[1].title == "first"
    assert graph.total_edges == 3


@pytest.mark.asyncio
async def test_provider_failures_do_not_fail_build(graph_service, registry, corpus) -> None:
    corpus.add_file("/n/a.org")

    def explode(node, ctx):
        raise RuntimeError("provider bug")

    registry.register(EnrichmentProvider(id="broken", enrich_node=explode))

    graph = await graph_service.build_graph("/n/a.org", depth=1)

    assert [node.id for node in graph.nodes] == ["/n/a.org"]


@pytest.mark.asyncio
async def test_priority_order_is_call_order(graph_service, registry, corpus) -> None:
    corpus.add_file("/n/a.org")
    calls = []
    registry.register(
        EnrichmentProvider(id="low", priority=0, enrich_node=lambda n, c: calls.append("low"))
    )
    registry.register(
        EnrichmentProvider(id="high", priority=10, enrich_node=lambda n, c: calls.append("high"))
    )

    await graph_service.build_graph("/n/a.org", depth=0)

    assert calls == ["high", "low"]


@pytest.mark.asyncio
async def test_builtin_providers_enrich_nodes(db_service, app_config, corpus) -> None:
    corpus.add_file("/n/a.org")
    corpus.add_file("/n/b.org")
    corpus.add_link("/n/a.org", "/n/b.org")
    registry = EnrichmentRegistry()
    register_builtin_providers(registry)
    service = LinkGraphService(db_service=db_service, registry=registry, config=app_config)

    graph = await service.build_graph("/n/a.org", depth=1)

    center = graph.nodes[0]
    assert center.metadata["outgoing_links"] == 1
    assert center.metadata["enriched_size"] == 20.0
    assert center.metadata["enriched_color"] == "#4caf50"


@pytest.mark.asyncio
async def test_defaults_come_from_config(db_service, corpus) -> None:
    for name in ("a", "b", "c"):
        corpus.add_file(f"/n/{name}.org")
    corpus.add_link("/n/a.org", "/n/b.org")
    corpus.add_link("/n/b.org", "/n/c.org")
    config = AppConfig(
        database_path=db_service.db_path,
        default_depth=1,
        max_nodes=5,
        enable_builtin_providers=False,
    )
    service = LinkGraphService(db_service=db_service, config=config)

    graph = await service.build_graph("/n/a.org")

    assert {node.id for node in graph.nodes} == {"/n/a.org", "/n/b.org"}


@pytest.mark.asyncio
async def test_missing_database_degrades_to_center_only(tmp_path: Path) -> None:
    db_service = DatabaseService(tmp_path / "missing.db")
    config = AppConfig(database_path=db_service.db_path, enable_builtin_providers=False)
    service = LinkGraphService(db_service=db_service, config=config)

    graph = await service.build_graph("/n/a.org", depth=2)

    assert len(graph.nodes) == 1
    assert graph.nodes[0].is_center
    assert graph.nodes[0].heading_count == 0
    assert not (tmp_path / "missing.db").exists()


def test_link_stats(graph_service, corpus) -> None:
    for path in ("/n/a.org", "/n/b.org", "/n/c.org", "/n/d.org"):
        corpus.add_file(path)
    corpus.add_link("/n/a.org", "/n/b.org")
    corpus.add_link("/n/a.org", "/n/c.org")
    corpus.add_link("/n/a.org", "https://example.com", link_type="https")
    corpus.add_link("/n/b.org", "/n/a.org")
    corpus.add_link("/n/b.org", "a.org::*Section")
    corpus.add_link("/n/d.org", "/home/me/n/a.org")

    stats = graph_service.get_link_stats("/n/a.org")

    assert stats.outgoing == 3
    assert stats.outgoing_by_type == {"file": 2, "https": 1}
    assert stats.incoming == 2


def test_link_stats_on_missing_database(tmp_path: Path) -> None:
    db_service = DatabaseService(tmp_path / "missing.db")
    config = AppConfig(database_path=db_service.db_path, enable_builtin_providers=False)

    stats = LinkGraphService(db_service=db_service, config=config).get_link_stats("/n/a.org")

    assert stats.outgoing == 0
    assert stats.incoming == 0
