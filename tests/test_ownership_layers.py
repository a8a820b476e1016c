import pytest

from engine.indirect_propagator import compute_indirect
from engine.ownership_layers import EDGE_KIND_DIRECT, EDGE_KIND_INDIRECT, graph_edges, strictly_indirect
from models.ownership import Entity, OwnedObject, OwnerRef, Ownership


@pytest.fixture
def totals(snapshot):
    return compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)


def test_strictly_indirect_drops_direct_duplicates(snapshot, totals):
    rows = strictly_indirect(totals, snapshot.ownerships, snapshot.entities, snapshot.objects)

    ids = {r.id for r in rows}
    assert "entity:a->object:1" not in ids
    assert "object:9->object:10" not in ids
    assert "entity:a->object:9" in ids
    assert len(rows) == 20

    top = rows[0]
    assert top.id == "object:7->object:9"
    assert top.label == "Yard G → Aggregator I"
    assert top.percent == pytest.approx(25.9)


def test_strictly_indirect_applies_materiality_threshold():
    entities = [Entity("e", "E")]
    objects = [OwnedObject("1", "One"), OwnedObject("2", "Two")]
    ownerships = [
        Ownership("o1", OwnerRef.entity("e"), "1", 1),
        Ownership("o2", OwnerRef.object("1"), "2", 1),
    ]
    totals = compute_indirect(entities, objects, ownerships)

    assert totals["entity:e"]["2"] == pytest.approx(0.01)
    assert strictly_indirect(totals, ownerships, entities, objects) == []
    assert len(strictly_indirect(totals, ownerships, entities, objects, threshold=0)) == 1


def test_graph_edges_exclude_hidden_and_duplicates(snapshot, totals):
    edges = graph_edges(
        totals,
        snapshot.ownerships,
        snapshot.entities,
        snapshot.objects,
        hidden_indirect_ids={"entity:a->object:5"},
    )

    ids = [e.id for e in edges]
    assert "entity:a->object:5" not in ids
    assert len(ids) == len(set(ids))
    assert sum(1 for e in edges if e.kind == EDGE_KIND_DIRECT) == 11
    assert sum(1 for e in edges if e.kind == EDGE_KIND_INDIRECT) == 19

    alpha_nine = next(e for e in edges if e.id == "entity:a->object:9")
    assert (alpha_nine.source, alpha_nine.target) == ("entity:a", "object:9")


def test_graph_edges_prune_dangling_endpoints():
    entities = [Entity("e", "E")]
    objects = [OwnedObject("1", "One")]
    ownerships = [
        Ownership("o1", OwnerRef.entity("e"), "1", 40),
        Ownership("o2", OwnerRef.entity("e"), "gone", 10),
    ]
    totals = compute_indirect(entities, objects, ownerships)

    edges = graph_edges(totals, ownerships, entities, objects)

    assert [e.id for e in edges] == ["entity:e->object:1"]
