"""Assortativity coefficients over an explicit node/edge structure.

Continuous (scalar) attributes use the Pearson correlation between the values
at the two ends of every edge (Newman 2003, eq. 21). Weighted variants scale
each edge by its weight (Leung & Chau 2007; Farine 2014), so they coincide with
the unweighted coefficient when all weights are equal.

Nominal attributes use Newman's normalized mixing-matrix coefficient
(Newman 2003, eq. 2):

    r = (sum_i e_ii - sum_i a_i b_i) / (1 - sum_i a_i b_i)

Undirected networks count every edge in both orientations. Directed networks
pair the source's value with the target's value; degree assortativity then
uses out-degree at the source and in-degree at the target.
"""

from collections.abc import Hashable, Mapping

import numpy as np
import polars as pl

from state_homophily.errors import DegenerateInputError, MissingStateError
from state_homophily.models import StateNetwork


def node_values(network: StateNetwork, attribute: str) -> dict[str, object]:
    """Per-node attribute values taken from the network's StateRecords."""
    missing = [n for n in network.nodes if n not in network.records]
    if missing:
        msg = f"No attribute record for {len(missing)} node(s): {missing[:5]}"
        raise MissingStateError(msg, missing)
    return {n: network.records[n].value(attribute) for n in network.nodes}


def _resolve(network: StateNetwork, values: Mapping[str, object] | str) -> Mapping[str, object]:
    if isinstance(values, str):
        return node_values(network, values)
    return values


def _edge_ends(
    network: StateNetwork,
    source_values: Mapping[str, object],
    target_values: Mapping[str, object],
    weighted: bool,
) -> tuple[list, list, list[float]]:
    """Values at both ends of each edge, plus edge weights."""
    if network.n_edges == 0:
        msg = "Network has no edges; assortativity is undefined"
        raise DegenerateInputError(msg)

    absent = sorted(
        {n for e in network.edges for n in e.pair}
        - (set(source_values) & set(target_values))
    )
    if absent:
        msg = f"No attribute value for {len(absent)} connected node(s): {absent[:5]}"
        raise MissingStateError(msg, absent)

    xs, ys, ws = [], [], []
    for e in network.edges:
        w = e.weight if weighted else 1.0
        xs.append(source_values[e.source])
        ys.append(target_values[e.target])
        ws.append(w)
        if not network.directed and e.source != e.target:
            xs.append(source_values[e.target])
            ys.append(target_values[e.source])
            ws.append(w)
    return xs, ys, ws


def _pearson(xs: list, ys: list, ws: list[float]) -> float:
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    w = np.asarray(ws, dtype=float)
    if np.isnan(x).any() or np.isnan(y).any():
        msg = "Attribute values contain NaN"
        raise DegenerateInputError(msg)
    if w.sum() <= 0:
        msg = "Edge weights sum to zero"
        raise DegenerateInputError(msg)

    # Every edge joins equal values: perfect homophily, even with zero variance
    if np.array_equal(x, y):
        return 1.0

    total = w.sum()
    mx = (w * x).sum() / total
    my = (w * y).sum() / total
    var_x = (w * (x - mx) ** 2).sum() / total
    var_y = (w * (y - my) ** 2).sum() / total
    if var_x <= 0 or var_y <= 0:
        msg = "Attribute has zero variance across edge ends; coefficient is undefined"
        raise DegenerateInputError(msg)
    cov = (w * (x - mx) * (y - my)).sum() / total
    return float(np.clip(cov / np.sqrt(var_x * var_y), -1.0, 1.0))


def continuous_assortativity(
    network: StateNetwork,
    values: Mapping[str, float] | str,
    weighted: bool | None = None,
) -> float:
    """Scalar-attribute assortativity in [-1, 1].

    `values` is a node -> value mapping or the name of a StateRecord attribute.
    `weighted` defaults to the network's own flag.
    """
    vals = _resolve(network, values)
    w = network.weighted if weighted is None else weighted
    xs, ys, ws = _edge_ends(network, vals, vals, w)
    return _pearson(xs, ys, ws)


def _mixing(
    network: StateNetwork,
    labels: Mapping[str, Hashable],
    weighted: bool,
) -> tuple[list, np.ndarray]:
    xs, ys, ws = _edge_ends(network, labels, labels, weighted)
    categories = sorted(set(xs) | set(ys), key=str)
    index = {c: i for i, c in enumerate(categories)}
    e = np.zeros((len(categories), len(categories)))
    for x, y, w in zip(xs, ys, ws):
        e[index[x], index[y]] += w
    return categories, e / e.sum()


def discrete_assortativity(
    network: StateNetwork,
    labels: Mapping[str, Hashable] | str,
    weighted: bool | None = None,
) -> float:
    """Nominal-attribute assortativity (normalized mixing matrix)."""
    labs = _resolve(network, labels)
    w = network.weighted if weighted is None else weighted
    categories, e = _mixing(network, labs, w)
    if len(categories) < 2:
        msg = f"Only one category ({categories[0]!r}) appears at edge ends; coefficient is undefined"
        raise DegenerateInputError(msg)

    a = e.sum(axis=1)
    b = e.sum(axis=0)
    expected = float((a * b).sum())
    if np.isclose(expected, 1.0):
        msg = "Random-mixing expectation is 1; coefficient is undefined"
        raise DegenerateInputError(msg)
    return (float(np.trace(e)) - expected) / (1.0 - expected)


def degree_assortativity(network: StateNetwork, weighted: bool | None = None) -> float:
    """Continuous assortativity on node degree (strength when weighted)."""
    w = network.weighted if weighted is None else weighted
    deg = network.degrees(weighted=w)
    if network.directed:
        source_vals = {n: d["out"] for n, d in deg.items()}
        target_vals = {n: d["in"] for n, d in deg.items()}
    else:
        source_vals = target_vals = {n: d["total"] for n, d in deg.items()}
    xs, ys, ws = _edge_ends(network, source_vals, target_vals, w)
    return _pearson(xs, ys, ws)


def mixing_matrix(
    network: StateNetwork,
    labels: Mapping[str, Hashable] | str,
    weighted: bool | None = None,
) -> pl.DataFrame:
    """Normalized category x category mixing matrix (rows: source category)."""
    labs = _resolve(network, labels)
    w = network.weighted if weighted is None else weighted
    categories, e = _mixing(network, labs, w)
    data: dict[str, list] = {"category": [str(c) for c in categories]}
    for j, c in enumerate(categories):
        data[str(c)] = e[:, j].round(6).tolist()
    return pl.DataFrame(data)
