"""
Indirect propagation: one-hop figures, converging chains, cycle handling,
path-local visited sets and the acyclic shortcut strategy.
"""

import pytest

from engine.indirect_propagator import build_adjacency, build_ownership_graph, compute_indirect
from models.ownership import Entity, OwnedObject, OwnerRef, Ownership


def _objects(*ids):
    return [OwnedObject(i, f"Object {i}") for i in ids]


def test_sample_converging_chains(snapshot):
    totals = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)

    alpha = totals["entity:a"]
    # 0.42*0.53*0.12 + 0.35*0.21*0.63 = 0.026712 + 0.046305
    assert alpha["9"] == pytest.approx(7.30, abs=0.01)
    assert alpha["10"] == pytest.approx(2.34, abs=0.01)
    assert alpha["5"] == pytest.approx(22.26, abs=0.01)
    assert alpha["6"] == pytest.approx(7.35, abs=0.01)

    beta = totals["entity:b"]
    assert beta["8"] == pytest.approx(2.84, abs=0.01)
    assert beta["9"] == pytest.approx(0.99, abs=0.01)


def test_one_hop_entries_equal_direct_percent(snapshot):
    totals = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)

    for own in snapshot.ownerships:
        assert totals[own.owner.key][own.object_id] == pytest.approx(own.percent, abs=0.01)


def test_objects_are_sources_too(snapshot):
    totals = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)

    assert totals["object:1"]["9"] == pytest.approx(6.36, abs=0.01)
    assert totals["object:9"] == {"10": pytest.approx(32)}


def test_sources_without_outgoing_edges_have_no_entry(snapshot):
    totals = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)

    assert "object:10" not in totals


def test_rounding_applies_once_per_pair():
    # Two paths of 0.004% each: rounding per path would report 0.0.
    entities = [Entity("e", "E")]
    objects = _objects("1", "2", "3")
    ownerships = [
        Ownership("o1", OwnerRef.entity("e"), "1", 2),
        Ownership("o2", OwnerRef.entity("e"), "2", 2),
        Ownership("o3", OwnerRef.object("1"), "3", 0.2),
        Ownership("o4", OwnerRef.object("2"), "3", 0.2),
    ]

    totals = compute_indirect(entities, objects, ownerships)

    assert totals["entity:e"]["3"] == pytest.approx(0.01)


def test_diamond_counts_every_distinct_path():
    entities = [Entity("e", "E")]
    objects = _objects("1", "2", "3")
    ownerships = [
        Ownership("o1", OwnerRef.entity("e"), "1", 50),
        Ownership("o2", OwnerRef.entity("e"), "2", 50),
        Ownership("o3", OwnerRef.object("1"), "3", 100),
        Ownership("o4", OwnerRef.object("2"), "3", 100),
    ]

    totals = compute_indirect(entities, objects, ownerships)

    assert totals["entity:e"]["3"] == pytest.approx(100)


def test_parallel_duplicate_edges_propagate_separately():
    entities = [Entity("a", "A")]
    objects = _objects("1", "2")
    ownerships = [
        Ownership("o1", OwnerRef.entity("a"), "1", 10),
        Ownership("o2", OwnerRef.entity("a"), "1", 5),
        Ownership("o3", OwnerRef.object("1"), "2", 50),
    ]

    totals = compute_indirect(entities, objects, ownerships)

    assert totals["entity:a"]["1"] == pytest.approx(15)
    assert totals["entity:a"]["2"] == pytest.approx(7.5)


def test_two_object_cycle_terminates_without_self_ownership():
    objects = _objects("A", "B")
    ownerships = [
        Ownership("o1", OwnerRef.object("A"), "B", 50),
        Ownership("o2", OwnerRef.object("B"), "A", 40),
    ]

    totals = compute_indirect([], objects, ownerships)

    assert totals["object:A"] == {"B": pytest.approx(50)}
    assert totals["object:B"] == {"A": pytest.approx(40)}


def test_self_owning_object_reports_nothing():
    objects = _objects("A")
    ownerships = [Ownership("o1", OwnerRef.object("A"), "A", 30)]

    assert compute_indirect([], objects, ownerships) == {}


def test_edge_back_into_path_records_but_stops():
    # e -> A -> B -> A: the revisit of A adds 1.0*0.5*0.4 and goes no further.
    entities = [Entity("e", "E")]
    objects = _objects("A", "B")
    ownerships = [
        Ownership("o1", OwnerRef.entity("e"), "A", 100),
        Ownership("o2", OwnerRef.object("A"), "B", 50),
        Ownership("o3", OwnerRef.object("B"), "A", 40),
    ]

    totals = compute_indirect(entities, objects, ownerships)

    assert totals["entity:e"]["A"] == pytest.approx(120)
    assert totals["entity:e"]["B"] == pytest.approx(50)


def test_unlisted_sources_are_not_computed():
    ownerships = [Ownership("o1", OwnerRef.entity("ghost"), "1", 10)]

    assert compute_indirect([], _objects("1"), ownerships) == {}


def test_repeat_calls_are_identical(snapshot):
    first = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)
    second = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)

    assert first == second


def test_dag_strategy_matches_path_enumeration(snapshot):
    paths = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships)
    dag = compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships, strategy="dag")

    assert dag.keys() == paths.keys()
    for source, targets in paths.items():
        assert dag[source].keys() == targets.keys()
        for target, percent in targets.items():
            assert dag[source][target] == pytest.approx(percent, abs=0.01)


def test_dag_strategy_falls_back_on_cycles():
    entities = [Entity("e", "E")]
    objects = _objects("A", "B")
    ownerships = [
        Ownership("o1", OwnerRef.entity("e"), "A", 100),
        Ownership("o2", OwnerRef.object("A"), "B", 50),
        Ownership("o3", OwnerRef.object("B"), "A", 40),
    ]

    dag = compute_indirect(entities, objects, ownerships, strategy="dag")

    assert dag == compute_indirect(entities, objects, ownerships)


def test_unknown_strategy_is_rejected(snapshot):
    with pytest.raises(ValueError):
        compute_indirect(snapshot.entities, snapshot.objects, snapshot.ownerships, strategy="closure")


def test_graph_views_keep_parallel_edges():
    ownerships = [
        Ownership("o1", OwnerRef.entity("a"), "1", 10),
        Ownership("o2", OwnerRef.entity("a"), "1", 5),
    ]

    adj = build_adjacency(ownerships)
    G = build_ownership_graph([Entity("a", "A")], _objects("1"), ownerships)

    assert adj == {"entity:a": [("1", 0.1), ("1", 0.05)]}
    assert G.number_of_edges("entity:a", "object:1") == 2
    assert G.nodes["entity:a"]["name"] == "A"


@pytest.mark.parametrize(
    "declared, reported",
    [(0.125, 0.13), (50.125, 50.13), (0.015, 0.01), (42, 42.0)],
)
def test_half_way_percentages_round_up(declared, reported):
    ownerships = [Ownership("o1", OwnerRef.entity("e"), "1", declared)]

    totals = compute_indirect([Entity("e", "E")], _objects("1"), ownerships)

    assert totals["entity:e"]["1"] == reported
