"""Load -> build -> attach -> compute, as one call.

The same steps run once per quantile in the threshold sweep, so sensitivity
to the 90th-percentile cutoff can be checked alongside the main result.
"""

from dataclasses import dataclass

import polars as pl

from state_homophily.assortativity import (
    continuous_assortativity,
    degree_assortativity,
    discrete_assortativity,
)
from state_homophily.config import EXPECTED_STATE_COUNT, SIMILARITY_QUANTILE, SWEEP_QUANTILES
from state_homophily.errors import DegenerateInputError
from state_homophily.models import StateNetwork
from state_homophily.network import (
    attach_attributes,
    build_networks,
    check_state_count,
    compute_network_summary,
)

DISCRETE_ATTRIBUTES = ("division", "region")
CONTINUOUS_ATTRIBUTES = ("fatalities",)


@dataclass(frozen=True)
class AnalysisResult:
    """Attributed networks and the coefficient table from one run."""
    binary: StateNetwork
    weighted: StateNetwork
    coefficients: pl.DataFrame
    summary: dict


def _cause_share_columns(network: StateNetwork) -> list[str]:
    first = next(iter(network.records.values()), None)
    return sorted(first.cause_shares) if first is not None else []


def compute_coefficients(binary: StateNetwork, weighted: StateNetwork) -> pl.DataFrame:
    """One row per (attribute, kind, weighted) coefficient.

    A coefficient that is undefined for this data (e.g. a cause share that is
    identical across states) is reported as null with the reason in `note`.
    """
    specs = [(a, "discrete") for a in DISCRETE_ATTRIBUTES]
    specs += [(a, "continuous") for a in CONTINUOUS_ATTRIBUTES]
    specs += [(a, "continuous") for a in _cause_share_columns(binary)]
    specs.append(("degree", "degree"))

    rows = []
    for attribute, kind in specs:
        for network in (binary, weighted):
            try:
                if kind == "discrete":
                    r = discrete_assortativity(network, attribute)
                elif kind == "continuous":
                    r = continuous_assortativity(network, attribute)
                else:
                    r = degree_assortativity(network)
                note = None
            except DegenerateInputError as exc:
                r, note = None, str(exc)
            rows.append(
                {
                    "attribute": attribute,
                    "kind": kind,
                    "weighted": network.weighted,
                    "coefficient": r,
                    "note": note,
                }
            )
    return pl.DataFrame(
        rows,
        schema={
            "attribute": pl.String,
            "kind": pl.String,
            "weighted": pl.Boolean,
            "coefficient": pl.Float64,
            "note": pl.String,
        },
    )


def run_pipeline(
    similarity: pl.DataFrame,
    regions: pl.DataFrame,
    fatalities: pl.DataFrame,
    quantile: float = SIMILARITY_QUANTILE,
    directed: bool = True,
    expected_states: int | None = EXPECTED_STATE_COUNT,
) -> AnalysisResult:
    """Build both networks, attach attributes, and compute all coefficients."""
    binary, weighted = build_networks(similarity, quantile=quantile, directed=directed)
    if expected_states is not None:
        check_state_count(binary, expected_states)
    binary = attach_attributes(binary, regions, fatalities)
    weighted = attach_attributes(weighted, regions, fatalities)
    return AnalysisResult(
        binary=binary,
        weighted=weighted,
        coefficients=compute_coefficients(binary, weighted),
        summary=compute_network_summary(binary),
    )


def run_threshold_sweep(
    similarity: pl.DataFrame,
    regions: pl.DataFrame,
    fatalities: pl.DataFrame,
    quantiles: list[float] | None = None,
    directed: bool = True,
) -> pl.DataFrame:
    """Rebuild the networks at each quantile and report edges and coefficients."""
    if quantiles is None:
        quantiles = SWEEP_QUANTILES

    rows = []
    for q in quantiles:
        result = run_pipeline(
            similarity, regions, fatalities, quantile=q, directed=directed, expected_states=None
        )
        coef = {
            (r["attribute"], r["weighted"]): r["coefficient"]
            for r in result.coefficients.iter_rows(named=True)
        }
        rows.append(
            {
                "quantile": q,
                "threshold": result.summary["threshold"],
                "n_edges": result.summary["n_edges"],
                "density": result.summary["density"],
                "division": coef.get(("division", False)),
                "region": coef.get(("region", False)),
                "fatalities": coef.get(("fatalities", False)),
                "fatalities_weighted": coef.get(("fatalities", True)),
                "degree": coef.get(("degree", False)),
            }
        )
        print(
            f"    Quantile {q:.2f}: threshold={result.summary['threshold']}, "
            f"{result.summary['n_edges']} edges, "
            f"region r={_fmt(coef.get(('region', False)))}"
        )
    return pl.DataFrame(
        rows,
        schema={
            "quantile": pl.Float64,
            "threshold": pl.Float64,
            "n_edges": pl.Int64,
            "density": pl.Float64,
            "division": pl.Float64,
            "region": pl.Float64,
            "fatalities": pl.Float64,
            "fatalities_weighted": pl.Float64,
            "degree": pl.Float64,
        },
    )


def _fmt(value: float | None) -> str:
    return "n/a" if value is None else f"{value:+.4f}"
