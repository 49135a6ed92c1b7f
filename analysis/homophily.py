"""
U.S. State Similarity: Assortative Mixing Analysis

Builds a network of the 50 states from citizen-perceived similarity (edges for
pairs above the 90th percentile of similarity), attaches census region/division
and traffic-fatality attributes, and tests for homophily with discrete,
continuous, and degree assortativity coefficients. Draws tile-grid choropleth
maps and force-directed network plots.

Usage:
  uv run python analysis/homophily.py --similarity data/similarity.csv
      --fatalities data/fatalities.csv [--regions data/regions.csv]
      [--quantile 0.9] [--undirected] [--skip-sweep]

Outputs (in results/<dataset>/homophily/<date>/):
  - data/:   CSV files (coefficients, mixing matrices, edges, nodes, threshold sweep)
  - plots/:  PNG visualizations (maps, network layouts, sweep)
  - run_info.json, run_log.txt
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
import polars as pl
from matplotlib.colors import Normalize
from matplotlib.patches import Patch, Rectangle

from state_homophily.assortativity import mixing_matrix
from state_homophily.config import (
    DIVISION_COLORS,
    RANDOM_SEED,
    REGION_COLORS,
    SIMILARITY_QUANTILE,
    SWEEP_QUANTILES,
)
from state_homophily.loader import load_fatalities, load_regions, load_similarity
from state_homophily.models import StateNetwork
from state_homophily.network import to_networkx
from state_homophily.output import save_csvs
from state_homophily.pipeline import run_pipeline, run_threshold_sweep
from state_homophily.states import STATES

try:
    from analysis.run_context import RunContext
except ModuleNotFoundError:
    from run_context import RunContext  # type: ignore[no-redef]


# ── Constants ────────────────────────────────────────────────────────────────

TOP_LABEL_N = 10
MISSING_COLOR = "#DDDDDD"

HOMOPHILY_PRIMER = """\
# Assortative Mixing Among U.S. States

## Purpose

Do states that citizens perceive as similar also share a census region,
a census division, or a similar traffic-fatality burden? Assortativity
coefficients answer this: positive values mean similar states link to each
other (homophily), negative values mean dissimilar states link (heterophily).

## Method

### Network Construction
- **Nodes:** The 50 states (District of Columbia dropped from all tables).
- **Edges:** State pairs whose perceived-similarity proportion strictly exceeds
  the 90th percentile of all pairs. Binary network: weight 1. Weighted network:
  weight = proportion.

### Coefficients
- **Discrete (division, region):** Newman's mixing-matrix coefficient.
- **Continuous (fatalities, cause shares):** Pearson correlation of values at
  the two ends of each edge, optionally weighted by edge weight.
- **Degree:** The continuous coefficient applied to each state's degree.

## Outputs

| File | Contents |
|------|----------|
| `coefficients.csv` | Every coefficient, weighted and unweighted |
| `mixing_{attribute}.csv` | Normalized mixing matrix for region/division |
| `edges.csv`, `nodes.csv` | The weighted edge list and node attributes |
| `threshold_sweep.csv` | Coefficients at several threshold quantiles |

## Caveats

- Network topology depends on the 90th-percentile cutoff; check the sweep
- 50 nodes is small; coefficients move noticeably with a handful of edges
- Directed by default (state_i -> state_j kept as surveyed)
"""


# ── Helpers ──────────────────────────────────────────────────────────────────


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="U.S. State Assortative Mixing Analysis")
    parser.add_argument("--similarity", type=Path, required=True, help="Dyadic similarity table")
    parser.add_argument("--fatalities", type=Path, required=True, help="State fatality table")
    parser.add_argument(
        "--regions", type=Path, default=None, help="Census table (default: built-in)"
    )
    parser.add_argument("--dataset", default="state-similarity", help="Name for results/<dataset>/")
    parser.add_argument("--results-root", type=Path, default=None, help="Override results root")
    parser.add_argument(
        "--quantile",
        type=float,
        default=SIMILARITY_QUANTILE,
        help=f"Similarity percentile for edge creation (default: {SIMILARITY_QUANTILE})",
    )
    parser.add_argument(
        "--undirected",
        action="store_true",
        help="Average both directions of each pair",
    )
    parser.add_argument(
        "--skip-sweep",
        action="store_true",
        help="Skip the threshold sensitivity sweep",
    )
    return parser.parse_args(argv)


def print_header(title: str) -> None:
    width = 80
    print(f"\n{'=' * width}")
    print(f"  {title}")
    print(f"{'=' * width}")


def save_fig(fig: plt.Figure, path: Path, dpi: int = 150) -> None:
    fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    print(f"  Saved: {path.name}")


# ── Choropleth Maps ──────────────────────────────────────────────────────────


def plot_tile_map(
    values: dict[str, object],
    title: str,
    out_path: Path,
    palette: dict[str, str] | None = None,
    cmap_name: str = "Reds",
    label: str = "",
) -> None:
    """Tile-grid choropleth: one square per state at its grid position.

    With a palette, values are categories mapped to colors; otherwise values are
    numbers drawn on a continuous colormap. States without a value are gray.
    """
    fig, ax = plt.subplots(1, 1, figsize=(12, 8))

    numeric = palette is None
    if numeric:
        present = [float(v) for v in values.values() if v is not None]
        norm = Normalize(vmin=min(present), vmax=max(present)) if present else Normalize(0, 1)
        cmap = matplotlib.colormaps[cmap_name]

    for s in STATES:
        v = values.get(s.name)
        if v is None:
            color = MISSING_COLOR
        elif numeric:
            color = cmap(norm(float(v)))
        else:
            color = palette.get(str(v), MISSING_COLOR)
        ax.add_patch(
            Rectangle(
                (s.tile_col, -s.tile_row),
                0.92,
                0.92,
                facecolor=color,
                edgecolor="white",
                linewidth=1.5,
            )
        )
        ax.text(
            s.tile_col + 0.46,
            -s.tile_row + 0.46,
            s.abbreviation,
            ha="center",
            va="center",
            fontsize=9,
            fontweight="bold",
            color="#222222",
        )

    ax.set_xlim(-0.2, 11.2)
    ax.set_ylim(-7.2, 1.2)
    ax.set_aspect("equal")
    ax.axis("off")

    if numeric:
        sm = plt.cm.ScalarMappable(cmap=cmap, norm=norm)
        sm.set_array([])
        plt.colorbar(sm, ax=ax, label=label, shrink=0.6)
    else:
        used = sorted({str(v) for v in values.values() if v is not None})
        ax.legend(
            handles=[Patch(facecolor=palette.get(c, MISSING_COLOR), label=c) for c in used],
            loc="lower right",
            fontsize=8,
            frameon=False,
        )

    ax.set_title(title, fontsize=14, fontweight="bold")
    save_fig(fig, out_path)


# ── Network Plots ────────────────────────────────────────────────────────────


def _compute_layout(G: nx.Graph) -> dict[str, np.ndarray]:
    """Force-directed (Fruchterman-Reingold) layout with a fixed seed."""
    if G.number_of_nodes() == 0:
        return {}
    return nx.spring_layout(
        G,
        weight="weight",
        seed=RANDOM_SEED,
        k=2.0 / np.sqrt(G.number_of_nodes()),
        iterations=100,
    )


def plot_network_layout(
    network: StateNetwork,
    color_by: str,
    title: str,
    out_path: Path,
    pos: dict | None = None,
    label_top_n: int = TOP_LABEL_N,
) -> dict:
    """Plot the network with nodes colored by region/division and sized by fatalities.

    Returns the position dict for reuse.
    """
    G = to_networkx(network)
    if G.number_of_nodes() == 0:
        return {}
    if pos is None:
        pos = _compute_layout(G)

    fig, ax = plt.subplots(1, 1, figsize=(14, 10))
    nodes = list(G.nodes())

    palette = REGION_COLORS if color_by == "region" else DIVISION_COLORS
    node_colors = [palette.get(G.nodes[n].get(color_by, ""), MISSING_COLOR) for n in nodes]
    used = sorted({G.nodes[n].get(color_by) for n in nodes if G.nodes[n].get(color_by)})
    legend_elements = [Patch(facecolor=palette.get(c, MISSING_COLOR), label=c) for c in used]

    fatal = [G.nodes[n].get("fatalities", 0.0) for n in nodes]
    max_fatal = max(fatal) if fatal and max(fatal) > 0 else 1.0
    node_sizes = [120 + 600 * f / max_fatal for f in fatal]

    edge_weights = [d.get("weight", 1.0) for _, _, d in G.edges(data=True)]
    max_w = max(edge_weights) if edge_weights else 1.0
    edge_widths = [0.4 + 2.0 * w / max_w for w in edge_weights]

    nx.draw_networkx_edges(
        G,
        pos,
        ax=ax,
        alpha=0.35,
        width=edge_widths,
        edge_color="#888888",
        arrows=network.directed,
        arrowsize=8,
    )
    nx.draw_networkx_nodes(
        G,
        pos,
        ax=ax,
        node_color=node_colors,
        node_size=node_sizes,
        alpha=0.9,
        edgecolors="white",
        linewidths=0.5,
    )

    # Label every state by postal code; bold the best-connected ones
    degrees = dict(G.degree())
    top = set(sorted(degrees, key=degrees.get, reverse=True)[:label_top_n])  # type: ignore[arg-type]
    for n in nodes:
        x, y = pos[n]
        ax.annotate(
            G.nodes[n].get("abbreviation", n),
            (x, y),
            fontsize=8 if n in top else 6,
            fontweight="bold" if n in top else "normal",
            ha="center",
            va="center",
        )

    if legend_elements:
        ax.legend(handles=legend_elements, loc="upper left", fontsize=9, frameon=False)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.axis("off")
    save_fig(fig, out_path)
    return pos


def plot_threshold_sweep(sweep: pl.DataFrame, out_path: Path, quantile: float) -> None:
    """Plot coefficients and edge counts vs threshold quantile."""
    fig, axes = plt.subplots(1, 2, figsize=(13, 5))
    quantiles = sweep["quantile"].to_list()

    ax = axes[0]
    for col, label, color in [
        ("region", "Region", "#7570B3"),
        ("division", "Division", "#1B9E77"),
        ("fatalities", "Fatalities", "#D95F02"),
        ("degree", "Degree", "#666666"),
    ]:
        vals = [np.nan if v is None else v for v in sweep[col].to_list()]
        ax.plot(quantiles, vals, "o-", label=label, color=color, linewidth=2, markersize=6)
    ax.axhline(0.0, color="#999999", linewidth=1)
    ax.axvline(quantile, color="#E81B23", linestyle="--", alpha=0.6, linewidth=1.5)
    ax.set_xlabel("Similarity Quantile", fontsize=10)
    ax.set_ylabel("Assortativity (r)", fontsize=10)
    ax.set_title("Coefficients", fontsize=11, fontweight="bold")
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    ax.plot(quantiles, sweep["n_edges"].to_list(), "o-", color="#333333", linewidth=2)
    ax.axvline(quantile, color="#E81B23", linestyle="--", alpha=0.6, linewidth=1.5)
    ax.set_xlabel("Similarity Quantile", fontsize=10)
    ax.set_ylabel("Number of Edges", fontsize=10)
    ax.set_title("Edges Kept", fontsize=11, fontweight="bold")
    ax.grid(True, alpha=0.3)

    fig.suptitle(
        "How Do the Results Change as We Raise the Bar for Similarity?",
        fontsize=13,
        fontweight="bold",
    )
    fig.tight_layout()
    save_fig(fig, out_path)


# ── Main ─────────────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    with RunContext(
        dataset=args.dataset,
        analysis_name="homophily",
        params=vars(args),
        results_root=args.results_root,
        primer=HOMOPHILY_PRIMER,
    ) as ctx:
        print(f"U.S. State Assortative Mixing: Dataset {args.dataset}")
        print(f"Similarity:  {args.similarity}")
        print(f"Fatalities:  {args.fatalities}")
        print(f"Regions:     {args.regions or 'built-in census table'}")
        print(f"Output:      {ctx.run_dir}")
        print(f"Quantile:    {args.quantile}")

        # ── Phase 1: Load data ──
        print_header("PHASE 1: LOADING DATA")
        similarity = load_similarity(args.similarity)
        regions = load_regions(args.regions)
        fatalities = load_fatalities(args.fatalities)
        print(f"  Similarity pairs: {similarity.height}")
        print(f"  Census rows:      {regions.height}")
        print(f"  Fatality rows:    {fatalities.height}")

        # ── Phase 2: Build network ──
        print_header("PHASE 2: NETWORK CONSTRUCTION")
        directed = not args.undirected
        result = run_pipeline(
            similarity, regions, fatalities, quantile=args.quantile, directed=directed
        )
        summary = result.summary
        print(f"  Threshold: {summary['threshold']}")
        print(f"  Nodes: {summary['n_nodes']}")
        print(f"  Edges: {summary['n_edges']}")
        print(f"  Density: {summary['density']}")
        print(f"  Components: {summary['n_components']}")
        print(f"  Isolates: {summary['n_isolates']}")

        # ── Phase 3: Assortativity ──
        print_header("PHASE 3: ASSORTATIVITY COEFFICIENTS")
        for row in result.coefficients.iter_rows(named=True):
            r = row["coefficient"]
            tag = "weighted" if row["weighted"] else "binary"
            value = f"{r:+.4f}" if r is not None else f"n/a ({row['note']})"
            print(f"  {row['attribute']:20s} {tag:9s} r = {value}")

        for attribute in ("region", "division"):
            mm = mixing_matrix(result.binary, attribute)
            mm.write_csv(ctx.data_dir / f"mixing_{attribute}.csv")
            print(f"  Saved: mixing_{attribute}.csv")

        # ── Phase 4: Threshold sweep ──
        sweep = None
        if not args.skip_sweep:
            print_header("PHASE 4: THRESHOLD SENSITIVITY")
            quantiles = sorted(set(SWEEP_QUANTILES) | {args.quantile})
            sweep = run_threshold_sweep(
                similarity, regions, fatalities, quantiles=quantiles, directed=directed
            )

        save_csvs(ctx.data_dir, result, sweep)

        # ── Phase 5: Plots ──
        print_header("PHASE 5: PLOTS")
        records = result.binary.records
        plot_tile_map(
            {n: r.region for n, r in records.items()},
            "Census Regions",
            ctx.plots_dir / "map_region.png",
            palette=REGION_COLORS,
        )
        plot_tile_map(
            {n: r.division for n, r in records.items()},
            "Census Divisions",
            ctx.plots_dir / "map_division.png",
            palette=DIVISION_COLORS,
        )
        plot_tile_map(
            {n: r.fatalities for n, r in records.items()},
            "Traffic Fatalities",
            ctx.plots_dir / "map_fatalities.png",
            label="Fatalities",
        )

        pos = plot_network_layout(
            result.binary,
            "region",
            "Perceived-Similarity Network: Census Region",
            ctx.plots_dir / "network_region.png",
        )
        plot_network_layout(
            result.weighted,
            "division",
            "Perceived-Similarity Network (Weighted): Census Division",
            ctx.plots_dir / "network_division.png",
            pos=pos,
        )
        if sweep is not None:
            plot_threshold_sweep(sweep, ctx.plots_dir / "threshold_sweep.png", args.quantile)

        print_header("DONE")
        print(f"  All outputs in: {ctx.run_dir}")


if __name__ == "__main__":
    main()
