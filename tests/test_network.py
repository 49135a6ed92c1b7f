"""
Tests for network construction in network.py and the StateNetwork model.

Covers percentile thresholding, edge selection, duplicate handling, the
directed/undirected choice, attribute attachment, and the networkx bridge.

Run: uv run pytest tests/test_network.py -v
"""

import networkx as nx
import polars as pl
import pytest

from state_homophily.errors import (
    DegenerateInputError,
    DuplicatePairError,
    InputFormatError,
    MissingStateError,
    StateCountError,
)
from state_homophily.models import Edge, StateNetwork
from state_homophily.network import (
    attach_attributes,
    build_network,
    build_networks,
    check_state_count,
    compute_network_summary,
    dedupe_observations,
    select_edges,
    similarity_threshold,
    symmetrize,
    to_networkx,
)
from synthetic import make_similarity


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def abcd() -> pl.DataFrame:
    """Four states with six pairwise proportions."""
    return pl.DataFrame(
        {
            "state_i": ["A", "A", "A", "B", "B", "C"],
            "state_j": ["B", "C", "D", "C", "D", "D"],
            "proportion": [0.95, 0.50, 0.10, 0.92, 0.05, 0.80],
        }
    )


def _regions(names: list[str]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "state": names,
            "region": ["R1" if i % 2 == 0 else "R2" for i in range(len(names))],
            "division": [f"D{i % 3}" for i in range(len(names))],
        }
    )


def _fatalities(names: list[str]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "state": names,
            "fatalities": [float(10 * (i + 1)) for i in range(len(names))],
            "pct_alcohol": [float(20 + i) for i in range(len(names))],
        }
    )


# ── similarity_threshold() ──────────────────────────────────────────────────


class TestSimilarityThreshold:
    """90th percentile with linear interpolation between order statistics."""

    def test_ten_values(self):
        """0.1..1.0: position 0.9 * 9 = 8.1 -> 0.9 + 0.1 * 0.1 = 0.91."""
        df = pl.DataFrame({"proportion": [i / 10 for i in range(1, 11)]})
        assert similarity_threshold(df) == pytest.approx(0.91)

    def test_abcd(self, abcd):
        """Sorted .05 .10 .50 .80 .92 .95: position 4.5 -> 0.935."""
        assert similarity_threshold(abcd) == pytest.approx(0.935)

    def test_other_quantile(self, abcd):
        assert similarity_threshold(abcd, 0.5) == pytest.approx(0.65)

    def test_empty_raises(self):
        df = pl.DataFrame({"proportion": []}, schema={"proportion": pl.Float64})
        with pytest.raises(DegenerateInputError, match="empty"):
            similarity_threshold(df)

    def test_all_equal_raises(self):
        df = pl.DataFrame({"proportion": [0.3, 0.3, 0.3]})
        with pytest.raises(DegenerateInputError, match="degenerate"):
            similarity_threshold(df)

    @pytest.mark.parametrize("q", [0.0, 1.0, 1.5])
    def test_bad_quantile(self, abcd, q):
        with pytest.raises(InputFormatError, match="Quantile"):
            similarity_threshold(abcd, q)


# ── Edge selection ──────────────────────────────────────────────────────────


class TestSelectEdges:
    """Strictly greater than the threshold, source order kept."""

    def test_example_threshold_090(self, abcd):
        kept = select_edges(abcd, 0.90)
        assert list(zip(kept["state_i"], kept["state_j"])) == [("A", "B"), ("B", "C")]

    def test_equal_to_threshold_excluded(self, abcd):
        kept = select_edges(abcd, 0.92)
        assert kept["state_j"].to_list() == ["B"]


class TestBuildNetwork:
    """Binary and weighted networks over the same edge set."""

    def test_computed_threshold(self, abcd):
        net = build_network(abcd)
        assert net.threshold == pytest.approx(0.935)
        assert net.edge_list() == [("A", "B")]

    def test_explicit_threshold(self, abcd):
        net = build_network(abcd, threshold=0.90)
        assert net.edge_list() == [("A", "B"), ("B", "C")]

    def test_isolates_kept_as_nodes(self, abcd):
        net = build_network(abcd, threshold=0.90)
        assert net.nodes == ("A", "B", "C", "D")

    def test_binary_weights_are_one(self, abcd):
        net = build_network(abcd, threshold=0.90)
        assert not net.weighted
        assert [e.weight for e in net.edges] == [1.0, 1.0]

    def test_weighted_weights_are_proportions(self, abcd):
        net = build_network(abcd, threshold=0.90, weighted=True)
        assert net.weighted
        assert [e.weight for e in net.edges] == [0.95, 0.92]

    def test_build_networks_same_edges(self, abcd):
        binary, weighted = build_networks(abcd, threshold=0.90)
        assert binary.edge_list() == weighted.edge_list()
        assert binary.threshold == weighted.threshold

    def test_no_edges_raises(self, abcd):
        with pytest.raises(DegenerateInputError, match="no edges"):
            build_network(abcd, threshold=0.99)

    def test_direction_preserved(self):
        df = pl.DataFrame(
            {
                "state_i": ["B", "A", "C"],
                "state_j": ["A", "C", "B"],
                "proportion": [0.9, 0.1, 0.2],
            }
        )
        net = build_network(df, threshold=0.5)
        assert net.directed
        assert net.edge_list() == [("B", "A")]

    def test_fifty_state_network(self):
        net = build_network(make_similarity(include_dc=False))
        assert net.n_nodes == 50
        # 2450 ordered pairs; 10% lie above the 90th percentile
        assert 230 <= net.n_edges <= 250
        check_state_count(net)


# ── Duplicates and symmetry ─────────────────────────────────────────────────


class TestDedupe:
    """Repeated rows collapse; conflicting values for one pair fail."""

    def test_identical_rows_collapse(self, abcd):
        doubled = pl.concat([abcd, abcd])
        assert dedupe_observations(doubled).height == 6
        assert build_network(doubled, threshold=0.90).n_edges == 2

    def test_conflicting_values_raise(self):
        df = pl.DataFrame(
            {"state_i": ["A", "A"], "state_j": ["B", "B"], "proportion": [0.3, 0.4]}
        )
        with pytest.raises(DuplicatePairError, match="A -> B"):
            dedupe_observations(df)

    def test_reverse_pair_is_distinct(self):
        df = pl.DataFrame(
            {"state_i": ["A", "B"], "state_j": ["B", "A"], "proportion": [0.3, 0.4]}
        )
        assert dedupe_observations(df).height == 2


class TestUndirected:
    """Undirected builds average both directions of a pair."""

    def test_symmetrize_means(self):
        df = pl.DataFrame(
            {
                "state_i": ["A", "B", "A"],
                "state_j": ["B", "A", "C"],
                "proportion": [0.2, 0.4, 0.9],
            }
        )
        sym = symmetrize(df).sort("state_i", "state_j")
        assert sym.rows() == [("A", "B", pytest.approx(0.3)), ("A", "C", 0.9)]

    def test_undirected_network_has_no_reverse_duplicates(self):
        df = pl.DataFrame(
            {
                "state_i": ["A", "B", "A", "C"],
                "state_j": ["B", "A", "C", "B"],
                "proportion": [0.9, 0.8, 0.1, 0.2],
            }
        )
        net = build_network(df, threshold=0.5, directed=False)
        assert not net.directed
        assert net.edge_list() == [("A", "B")]
        assert net.edges[0].weight == 1.0


# ── StateNetwork.from_edges() ───────────────────────────────────────────────


class TestFromEdges:
    """Round-trip: the edge set comes back exactly as given."""

    def test_round_trip(self):
        edges = [("A", "B"), ("C", "A"), ("B", "C")]
        net = StateNetwork.from_edges(edges)
        assert net.edge_list() == edges

    def test_self_loop_only_when_given(self):
        net = StateNetwork.from_edges([("A", "B")])
        assert all(s != t for s, t in net.edge_list())
        looped = StateNetwork.from_edges([("A", "B"), ("B", "B")])
        assert ("B", "B") in looped.edge_list()

    def test_duplicate_edge_rejected(self):
        with pytest.raises(ValueError, match="Duplicate edge"):
            StateNetwork.from_edges([("A", "B"), ("A", "B")])

    def test_reverse_edge_duplicate_when_undirected(self):
        with pytest.raises(ValueError, match="Duplicate edge"):
            StateNetwork.from_edges([("A", "B"), ("B", "A")], directed=False)

    def test_unknown_node_rejected(self):
        with pytest.raises(ValueError, match="unknown node"):
            StateNetwork(nodes=("A",), edges=(Edge("A", "B"),))

    def test_weights(self):
        net = StateNetwork.from_edges([("A", "B", 0.4)], weighted=True)
        assert net.edges[0].weight == 0.4
        binary = StateNetwork.from_edges([("A", "B", 0.4)])
        assert binary.edges[0].weight == 1.0

    def test_degrees(self):
        net = StateNetwork.from_edges([("A", "B"), ("A", "C"), ("C", "B")])
        deg = net.degrees()
        assert deg["A"] == {"out": 2.0, "in": 0.0, "total": 2.0}
        assert deg["B"]["in"] == 2.0


# ── attach_attributes() ─────────────────────────────────────────────────────


class TestAttachAttributes:
    """Every node gets exactly one record; gaps are errors, not zeros."""

    def test_records_attached(self, abcd):
        net = build_network(abcd, threshold=0.90)
        names = list(net.nodes)
        attributed = attach_attributes(net, _regions(names), _fatalities(names))
        rec = attributed.records["B"]
        assert rec.region == "R2"
        assert rec.division == "D1"
        assert rec.fatalities == 20.0
        assert rec.cause_shares == {"pct_alcohol": 21.0}
        assert rec.abbreviation == "B"

    def test_original_network_unchanged(self, abcd):
        net = build_network(abcd, threshold=0.90)
        names = list(net.nodes)
        attach_attributes(net, _regions(names), _fatalities(names))
        assert len(net.records) == 0

    def test_cause_shares_read_only(self, abcd):
        net = build_network(abcd, threshold=0.90)
        names = list(net.nodes)
        rec = attach_attributes(net, _regions(names), _fatalities(names)).records["A"]
        with pytest.raises(TypeError):
            rec.cause_shares["pct_alcohol"] = 0.0

    def test_real_state_abbreviation(self):
        df = pl.DataFrame(
            {"state_i": ["Kansas"], "state_j": ["Ohio"], "proportion": [0.9]}
        )
        net = build_network(df, threshold=0.5)
        names = ["Kansas", "Ohio"]
        attributed = attach_attributes(net, _regions(names), _fatalities(names))
        assert attributed.records["Kansas"].abbreviation == "KS"

    def test_missing_state_raises(self, abcd):
        net = build_network(abcd, threshold=0.90)
        with pytest.raises(MissingStateError, match="Census") as exc_info:
            attach_attributes(net, _regions(["A", "B", "C"]), _fatalities(list(net.nodes)))
        assert exc_info.value.states == ["D"]

    def test_extra_state_raises(self, abcd):
        net = build_network(abcd, threshold=0.90)
        names = list(net.nodes)
        with pytest.raises(MissingStateError, match="absent from the similarity network"):
            attach_attributes(net, _regions(names), _fatalities([*names, "E"]))


class TestStateCount:
    def test_wrong_count_raises(self, abcd):
        net = build_network(abcd, threshold=0.90)
        with pytest.raises(StateCountError, match="expected 50"):
            check_state_count(net)

    def test_custom_count(self, abcd):
        check_state_count(build_network(abcd, threshold=0.90), expected=4)


# ── networkx bridge ─────────────────────────────────────────────────────────


class TestToNetworkx:
    def test_directed_graph(self, abcd):
        net = build_network(abcd, threshold=0.90, weighted=True)
        G = to_networkx(net)
        assert isinstance(G, nx.DiGraph)
        assert set(G.edges()) == {("A", "B"), ("B", "C")}
        assert G["A"]["B"]["weight"] == 0.95

    def test_undirected_graph_with_attributes(self, abcd):
        net = build_network(abcd, threshold=0.90, directed=False)
        names = list(net.nodes)
        G = to_networkx(attach_attributes(net, _regions(names), _fatalities(names)))
        assert not G.is_directed()
        assert G.nodes["C"]["region"] == "R1"
        assert G.nodes["C"]["pct_alcohol"] == 22.0

    def test_summary(self, abcd):
        summary = compute_network_summary(build_network(abcd, threshold=0.90))
        assert summary["n_nodes"] == 4
        assert summary["n_edges"] == 2
        assert summary["n_isolates"] == 1
        assert summary["n_components"] == 2
        assert summary["threshold"] == 0.9
