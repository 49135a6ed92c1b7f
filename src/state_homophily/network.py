"""Similarity network construction and node attribute attachment.

Edges: pairs whose perceived-similarity proportion strictly exceeds the
90th percentile of all pairwise proportions. Binary networks carry weight 1.0;
weighted networks carry the proportion itself. state_i -> state_j order from
the source table is kept unless the network is built undirected, in which case
the two directions of a pair are averaged before thresholding.
"""

import networkx as nx
import polars as pl

from state_homophily.config import EXPECTED_STATE_COUNT, SIMILARITY_QUANTILE
from state_homophily.errors import (
    DegenerateInputError,
    DuplicatePairError,
    InputFormatError,
    MissingStateError,
    StateCountError,
)
from state_homophily.models import StateNetwork, StateRecord
from state_homophily.states import BY_NAME

# ── Thresholding ────────────────────────────────────────────────────────────


def dedupe_observations(similarity: pl.DataFrame) -> pl.DataFrame:
    """Collapse repeated rows to one value per directed pair."""
    df = similarity.select("state_i", "state_j", "proportion").unique(maintain_order=True)
    conflicts = (
        df.group_by("state_i", "state_j")
        .agg(pl.len().alias("n"))
        .filter(pl.col("n") > 1)
        .sort("state_i", "state_j")
    )
    if conflicts.height > 0:
        pairs = [f"{r['state_i']} -> {r['state_j']}" for r in conflicts.iter_rows(named=True)]
        msg = f"Conflicting similarity values for {len(pairs)} pair(s): {pairs[:5]}"
        raise DuplicatePairError(msg)
    return df


def symmetrize(similarity: pl.DataFrame) -> pl.DataFrame:
    """Average both directions of each unordered pair; state_i sorts first."""
    first = pl.col("state_i") <= pl.col("state_j")
    return (
        similarity.with_columns(
            pl.when(first).then(pl.col("state_i")).otherwise(pl.col("state_j")).alias("a"),
            pl.when(first).then(pl.col("state_j")).otherwise(pl.col("state_i")).alias("b"),
        )
        .group_by("a", "b", maintain_order=True)
        .agg(pl.col("proportion").mean())
        .rename({"a": "state_i", "b": "state_j"})
    )


def similarity_threshold(similarity: pl.DataFrame, quantile: float = SIMILARITY_QUANTILE) -> float:
    """Percentile cutoff of the proportion column (linear interpolation)."""
    if not 0.0 < quantile < 1.0:
        msg = f"Quantile must be strictly between 0 and 1, got {quantile}"
        raise InputFormatError(msg)
    if similarity.height == 0:
        msg = "Similarity table is empty; cannot compute a threshold"
        raise DegenerateInputError(msg)
    values = similarity["proportion"]
    if values.min() == values.max():
        msg = f"All {values.len()} similarity proportions equal {values.min()}; quantile is degenerate"
        raise DegenerateInputError(msg)
    return float(values.quantile(quantile, interpolation="linear"))


def select_edges(similarity: pl.DataFrame, threshold: float) -> pl.DataFrame:
    """Rows whose proportion strictly exceeds the threshold, in source order."""
    return similarity.filter(pl.col("proportion") > threshold)


# ── Network Construction ────────────────────────────────────────────────────


def _prepare(similarity: pl.DataFrame, directed: bool) -> pl.DataFrame:
    df = dedupe_observations(similarity)
    return df if directed else symmetrize(df)


def _network_from_pairs(
    pairs: pl.DataFrame,
    threshold: float,
    nodes: list[str],
    directed: bool,
    weighted: bool,
) -> StateNetwork:
    kept = select_edges(pairs, threshold)
    if kept.height == 0:
        msg = f"No pair exceeds the similarity threshold {threshold:.4f}; network has no edges"
        raise DegenerateInputError(msg)
    return StateNetwork.from_edges(
        kept.iter_rows(),
        nodes=nodes,
        directed=directed,
        weighted=weighted,
        threshold=threshold,
    )


def _all_states(similarity: pl.DataFrame) -> list[str]:
    return sorted(set(similarity["state_i"].to_list()) | set(similarity["state_j"].to_list()))


def build_network(
    similarity: pl.DataFrame,
    quantile: float = SIMILARITY_QUANTILE,
    weighted: bool = False,
    directed: bool = True,
    threshold: float | None = None,
) -> StateNetwork:
    """Build one network from a (state_i, state_j, proportion) table.

    Nodes are every state named in the table, including those left without
    edges. Pass `threshold` to skip the quantile computation.
    """
    pairs = _prepare(similarity, directed)
    if threshold is None:
        threshold = similarity_threshold(pairs, quantile)
    return _network_from_pairs(pairs, threshold, _all_states(pairs), directed, weighted)


def build_networks(
    similarity: pl.DataFrame,
    quantile: float = SIMILARITY_QUANTILE,
    directed: bool = True,
    threshold: float | None = None,
) -> tuple[StateNetwork, StateNetwork]:
    """Binary and weighted networks over the same edge set."""
    pairs = _prepare(similarity, directed)
    if threshold is None:
        threshold = similarity_threshold(pairs, quantile)
    nodes = _all_states(pairs)
    binary = _network_from_pairs(pairs, threshold, nodes, directed, weighted=False)
    weighted = _network_from_pairs(pairs, threshold, nodes, directed, weighted=True)
    return binary, weighted


# ── Attributes ──────────────────────────────────────────────────────────────


def attach_attributes(
    network: StateNetwork,
    regions: pl.DataFrame,
    fatalities: pl.DataFrame,
) -> StateNetwork:
    """Return a copy of the network with a StateRecord for every node.

    Both tables must cover exactly the network's node set.
    """
    node_set = set(network.nodes)
    for table, df in (("Census", regions), ("Fatality", fatalities)):
        states = set(df["state"].to_list())
        missing = node_set - states
        if missing:
            msg = f"{table} table has no row for {len(missing)} state(s): {sorted(missing)}"
            raise MissingStateError(msg, list(missing))
        extra = states - node_set
        if extra:
            msg = (
                f"{table} table lists {len(extra)} state(s) absent from the "
                f"similarity network: {sorted(extra)}"
            )
            raise MissingStateError(msg, list(extra))

    region_rows = {r["state"]: r for r in regions.iter_rows(named=True)}
    share_cols = [c for c in fatalities.columns if c not in ("state", "fatalities")]

    records = {}
    for row in fatalities.iter_rows(named=True):
        name = row["state"]
        info = BY_NAME.get(name)
        records[name] = StateRecord(
            name=name,
            abbreviation=info.abbreviation if info else name,
            region=region_rows[name]["region"],
            division=region_rows[name]["division"],
            fatalities=float(row["fatalities"]),
            cause_shares={c: float(row[c]) for c in share_cols},
        )
    return network.with_records(records)


def check_state_count(network: StateNetwork, expected: int = EXPECTED_STATE_COUNT) -> None:
    """Raise StateCountError unless the network has exactly `expected` nodes."""
    if network.n_nodes != expected:
        msg = f"Network has {network.n_nodes} states; expected {expected}"
        raise StateCountError(msg)


# ── networkx bridge ─────────────────────────────────────────────────────────


def to_networkx(network: StateNetwork) -> nx.Graph:
    """Convert to nx.DiGraph (directed) or nx.Graph, with record attributes on nodes."""
    G = nx.DiGraph() if network.directed else nx.Graph()
    for name in network.nodes:
        rec = network.records.get(name)
        if rec is None:
            G.add_node(name)
            continue
        G.add_node(
            name,
            abbreviation=rec.abbreviation,
            region=rec.region,
            division=rec.division,
            fatalities=rec.fatalities,
            **dict(rec.cause_shares),
        )
    for e in network.edges:
        G.add_edge(e.source, e.target, weight=e.weight)
    return G


def compute_network_summary(network: StateNetwork) -> dict:
    """Summary statistics for a network."""
    G = to_networkx(network)
    if network.directed:
        n_components = nx.number_weakly_connected_components(G)
    else:
        n_components = nx.number_connected_components(G)
    n_isolates = nx.number_of_isolates(G)
    return {
        "n_nodes": network.n_nodes,
        "n_edges": network.n_edges,
        "density": round(nx.density(G), 4),
        "n_components": n_components,
        "n_isolates": n_isolates,
        "threshold": round(network.threshold, 4) if network.threshold is not None else None,
        "directed": network.directed,
    }
