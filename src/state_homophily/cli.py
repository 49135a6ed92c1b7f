"""Command-line interface for the state homophily analysis."""

import argparse
import sys
from pathlib import Path

import polars as pl

from state_homophily.config import EXPECTED_STATE_COUNT, SIMILARITY_QUANTILE, SWEEP_QUANTILES
from state_homophily.errors import HomophilyError
from state_homophily.loader import load_fatalities, load_regions, load_similarity
from state_homophily.output import save_csvs
from state_homophily.pipeline import run_pipeline, run_threshold_sweep
from state_homophily.states import STATES


def _print_coefficients(coefficients: pl.DataFrame) -> None:
    print()
    print(f"  {'Attribute':22s} {'Kind':11s} {'Weighted':9s} Coefficient")
    for row in coefficients.iter_rows(named=True):
        r = row["coefficient"]
        value = f"{r:+.4f}" if r is not None else f"n/a ({row['note']})"
        weighted = "yes" if row["weighted"] else "no"
        print(f"  {row['attribute']:22s} {row['kind']:11s} {weighted:9s} {value}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="state-homophily",
        description="Test U.S. state similarity networks for assortative mixing.",
    )
    parser.add_argument("similarity", nargs="?", type=Path, help="Dyadic similarity table")
    parser.add_argument("fatalities", nargs="?", type=Path, help="State fatality table")
    parser.add_argument(
        "--regions",
        type=Path,
        default=None,
        help="Census region/division table (default: built-in census table)",
    )
    parser.add_argument(
        "--quantile",
        type=float,
        default=SIMILARITY_QUANTILE,
        help=f"Similarity percentile for edge creation (default: {SIMILARITY_QUANTILE})",
    )
    parser.add_argument(
        "--undirected",
        action="store_true",
        help="Average both directions of each pair instead of keeping state_i -> state_j",
    )
    parser.add_argument(
        "--any-size",
        action="store_true",
        help=f"Skip the check that the network has {EXPECTED_STATE_COUNT} states",
    )
    parser.add_argument(
        "--sweep",
        action="store_true",
        help="Also recompute coefficients across several threshold quantiles",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Directory for CSV output (default: print only)",
    )
    parser.add_argument(
        "--list-states",
        action="store_true",
        help="List the 50 states with census region and division, then exit",
    )

    args = parser.parse_args(argv)

    if args.list_states:
        print("U.S. states (census region / division):")
        print()
        for s in STATES:
            print(f"  {s.abbreviation}  {s.name:16s}  {s.region:10s}  {s.division}")
        return

    if args.similarity is None or args.fatalities is None:
        parser.error("the similarity and fatalities tables are required")

    try:
        print("Loading data...")
        similarity = load_similarity(args.similarity)
        regions = load_regions(args.regions)
        fatalities = load_fatalities(args.fatalities)
        print(f"  Similarity pairs: {similarity.height}")
        print(f"  Census rows:      {regions.height}")
        print(f"  Fatality rows:    {fatalities.height}")

        directed = not args.undirected
        result = run_pipeline(
            similarity,
            regions,
            fatalities,
            quantile=args.quantile,
            directed=directed,
            expected_states=None if args.any_size else EXPECTED_STATE_COUNT,
        )
        summary = result.summary
        print(
            f"\nNetwork: {summary['n_nodes']} states, {summary['n_edges']} edges "
            f"(threshold {summary['threshold']}, {'directed' if directed else 'undirected'})"
        )
        _print_coefficients(result.coefficients)

        sweep = None
        if args.sweep:
            print("\nThreshold sweep:")
            quantiles = sorted(set(SWEEP_QUANTILES) | {args.quantile})
            sweep = run_threshold_sweep(
                similarity, regions, fatalities, quantiles=quantiles, directed=directed
            )
    except HomophilyError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.output is not None:
        save_csvs(args.output, result, sweep)
