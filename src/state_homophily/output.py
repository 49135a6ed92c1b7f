"""CSV output for networks and assortativity results."""

import csv
from dataclasses import asdict, fields
from pathlib import Path

import polars as pl

from state_homophily.models import Edge, StateNetwork
from state_homophily.pipeline import AnalysisResult


def _write_edges(path: Path, network: StateNetwork) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=[fld.name for fld in fields(Edge)])
        writer.writeheader()
        for e in network.edges:
            writer.writerow(asdict(e))


def _write_nodes(path: Path, network: StateNetwork) -> None:
    share_cols: list[str] = []
    for rec in network.records.values():
        share_cols = sorted(rec.cause_shares)
        break
    fieldnames = ["name", "abbreviation", "region", "division", "fatalities", *share_cols]
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for name in network.nodes:
            rec = network.records[name]
            row = {k: getattr(rec, k) for k in fieldnames[:5]}
            row.update({c: rec.cause_shares[c] for c in share_cols})
            writer.writerow(row)


def save_csvs(
    output_dir: Path,
    result: AnalysisResult,
    sweep: pl.DataFrame | None = None,
) -> None:
    """Save coefficients, weighted edges, node attributes, and the optional sweep."""
    print("\n" + "=" * 60)
    print("Saving CSV files...")
    print("=" * 60)
    output_dir.mkdir(parents=True, exist_ok=True)

    coef_file = output_dir / "coefficients.csv"
    result.coefficients.write_csv(coef_file)
    print(f"  {coef_file} ({result.coefficients.height} rows)")

    edges_file = output_dir / "edges.csv"
    _write_edges(edges_file, result.weighted)
    print(f"  {edges_file} ({result.weighted.n_edges} rows)")

    nodes_file = output_dir / "nodes.csv"
    _write_nodes(nodes_file, result.binary)
    print(f"  {nodes_file} ({result.binary.n_nodes} rows)")

    if sweep is not None:
        sweep_file = output_dir / "threshold_sweep.csv"
        sweep.write_csv(sweep_file)
        print(f"  {sweep_file} ({sweep.height} rows)")
