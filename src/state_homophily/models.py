"""Data classes for states, similarity observations, and networks."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType


@dataclass(frozen=True)
class StateRecord:
    """Attributes attached to one state node."""
    name: str
    abbreviation: str
    region: str
    division: str
    fatalities: float
    cause_shares: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cause_shares", MappingProxyType(dict(self.cause_shares)))

    def value(self, attribute: str) -> object:
        """Look up an attribute by name, including cause-share columns."""
        if attribute in ("name", "abbreviation", "region", "division", "fatalities"):
            return getattr(self, attribute)
        if attribute in self.cause_shares:
            return self.cause_shares[attribute]
        msg = f"StateRecord has no attribute {attribute!r}"
        raise AttributeError(msg)


@dataclass(frozen=True)
class SimilarityObservation:
    """Perceived similarity of state_j as judged from state_i."""
    state_i: str
    state_j: str
    proportion: float


@dataclass(frozen=True)
class Edge:
    """One (possibly directed) tie; weight is 1.0 in binary networks."""
    source: str
    target: str
    weight: float = 1.0

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source, self.target)


@dataclass(frozen=True)
class StateNetwork:
    """Immutable node/edge structure with optional per-node records."""

    nodes: tuple[str, ...]
    edges: tuple[Edge, ...]
    directed: bool = True
    weighted: bool = False
    threshold: float | None = None
    records: Mapping[str, StateRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        node_set = set(self.nodes)
        if len(node_set) != len(self.nodes):
            msg = "Duplicate node names in network"
            raise ValueError(msg)
        seen: set[tuple[str, str]] = set()
        for e in self.edges:
            if e.source not in node_set or e.target not in node_set:
                msg = f"Edge {e.source!r} -> {e.target!r} references an unknown node"
                raise ValueError(msg)
            key = e.pair if self.directed else tuple(sorted(e.pair))
            if key in seen:
                msg = f"Duplicate edge {e.source!r} -> {e.target!r}"
                raise ValueError(msg)
            seen.add(key)
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[tuple[str, str] | tuple[str, str, float]],
        nodes: Iterable[str] | None = None,
        directed: bool = True,
        weighted: bool = False,
        threshold: float | None = None,
    ) -> "StateNetwork":
        """Build a network from (source, target[, weight]) tuples.

        Nodes default to every endpoint; pass `nodes` to include isolates.
        Binary networks ignore supplied weights and store 1.0.
        """
        built = []
        endpoints: set[str] = set()
        for tup in edges:
            source, target = tup[0], tup[1]
            weight = float(tup[2]) if weighted and len(tup) > 2 else 1.0
            built.append(Edge(source, target, weight))
            endpoints.update((source, target))
        node_list = sorted(set(nodes) | endpoints) if nodes is not None else sorted(endpoints)
        return cls(
            nodes=tuple(node_list),
            edges=tuple(built),
            directed=directed,
            weighted=weighted,
            threshold=threshold,
        )

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    def edge_list(self) -> list[tuple[str, str]]:
        return [e.pair for e in self.edges]

    def with_records(self, records: Mapping[str, StateRecord]) -> "StateNetwork":
        """Return a copy carrying per-node records."""
        return replace(self, records=records)

    def degrees(self, weighted: bool = False) -> dict[str, dict[str, float]]:
        """Out/in/total degree per node (strength when weighted).

        Self-loops count twice toward the undirected total, as networkx does.
        """
        out = {n: 0.0 for n in self.nodes}
        inn = {n: 0.0 for n in self.nodes}
        for e in self.edges:
            w = e.weight if weighted else 1.0
            out[e.source] += w
            inn[e.target] += w
        return {n: {"out": out[n], "in": inn[n], "total": out[n] + inn[n]} for n in self.nodes}
