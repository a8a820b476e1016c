import pytest

from engine.indirect_propagator import compute_indirect
from engine.path_tracer import trace_paths
from models.ownership import Entity, OwnedObject, OwnerRef, Ownership, OwnershipSnapshot


def test_converging_paths_sum_to_reported_figure(snapshot):
    trace = trace_paths(snapshot, "entity:a", "9")

    assert trace["edge_id"] == "entity:a->object:9"
    assert len(trace["paths"]) == 2
    assert trace["paths"][0]["nodes"] == ["entity:a", "object:2", "object:6", "object:9"]
    assert trace["paths"][0]["contribution_percent"] == pytest.approx(4.63, abs=0.01)
    assert trace["paths"][1]["contribution_percent"] == pytest.approx(2.67, abs=0.01)

    totals = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)
    assert trace["total_percent"] == pytest.approx(totals["entity:a"]["9"])


def test_paths_list_ownership_records_and_weights(snapshot):
    trace = trace_paths(snapshot, "entity:b", "8")

    (path,) = trace["paths"]
    assert path["ownership_ids"] == [
        "entity:b->object:3",
        "object:3->object:7",
        "object:7->object:8",
    ]
    assert path["weights"] == pytest.approx([0.12, 0.32, 0.74])


def test_trace_matches_propagator_on_cycles():
    snapshot = OwnershipSnapshot.of(
        entities=[Entity("e", "E")],
        objects=[OwnedObject("A", "A"), OwnedObject("B", "B")],
        ownerships=[
            Ownership("o1", OwnerRef.entity("e"), "A", 100),
            Ownership("o2", OwnerRef.object("A"), "B", 50),
            Ownership("o3", OwnerRef.object("B"), "A", 40),
        ],
    )

    trace = trace_paths(snapshot, "entity:e", "A")
    self_trace = trace_paths(snapshot, "object:A", "A")

    assert [p["nodes"] for p in trace["paths"]] == [
        ["entity:e", "object:A"],
        ["entity:e", "object:A", "object:B", "object:A"],
    ]
    assert trace["total_percent"] == pytest.approx(120)
    assert self_trace["paths"] == []


def test_unreachable_target_has_no_paths(snapshot):
    trace = trace_paths(snapshot, "entity:b", "5")

    assert trace["paths"] == []
    assert trace["total_percent"] == 0


def test_malformed_source_key_is_rejected(snapshot):
    with pytest.raises(ValueError):
        trace_paths(snapshot, "a", "9")


def test_contributions_round_half_up():
    snapshot = OwnershipSnapshot.of(
        entities=[Entity("e", "E")],
        objects=[OwnedObject("1", "One")],
        ownerships=[Ownership("o1", OwnerRef.entity("e"), "1", 50.125)],
    )

    trace = trace_paths(snapshot, "entity:e", "1")

    assert trace["paths"][0]["contribution_percent"] == 50.13
    assert trace["total_percent"] == 50.13
