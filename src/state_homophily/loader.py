"""Readers for the similarity, census region, and fatality tables.

Every loader returns a polars DataFrame with canonical column names and
canonical state names (see states.normalize_state_name). Rows for non-state
entities (District of Columbia) are dropped so the tables join on the 50 states.
"""

import re
from pathlib import Path

import pandas as pd
import polars as pl

from state_homophily.config import (
    CAUSE_SHARE_PREFIX,
    FATALITY_COLUMNS,
    REGION_COLUMNS,
    SIMILARITY_COLUMNS,
)
from state_homophily.errors import InputFormatError
from state_homophily.models import SimilarityObservation
from state_homophily.states import census_table, is_excluded, normalize_state_name


def read_table(path: Path) -> pl.DataFrame:
    """Read a CSV, TSV, Parquet, or Stata file by extension."""
    path = Path(path)
    if not path.exists():
        msg = f"Input file not found: {path}"
        raise InputFormatError(msg)

    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pl.read_csv(path, infer_schema_length=None)
    if suffix in (".tsv", ".tab"):
        return pl.read_csv(path, separator="\t", infer_schema_length=None)
    if suffix == ".parquet":
        return pl.read_parquet(path)
    if suffix == ".dta":
        return pl.from_pandas(pd.read_stata(path, convert_categoricals=True))

    msg = f"Unsupported input format {suffix!r} for {path.name}"
    raise InputFormatError(msg)


def _normalize_header(name: str) -> str:
    """'State 1' -> 'state_1', 'Pct.Alcohol' -> 'pct_alcohol'."""
    return re.sub(r"[\s.\-]+", "_", name.strip()).lower()


def _resolve_columns(
    df: pl.DataFrame,
    aliases: dict[str, tuple[str, ...]],
    table: str,
) -> pl.DataFrame:
    """Rename columns to canonical names; raise if a required one is missing."""
    df = df.rename({c: _normalize_header(c) for c in df.columns})
    rename: dict[str, str] = {}
    missing = []
    for canonical, options in aliases.items():
        found = next((c for c in options if c in df.columns), None)
        if found is None:
            missing.append(canonical)
        elif found != canonical:
            rename[found] = canonical
    if missing:
        msg = (
            f"{table} table is missing required column(s) {missing}; "
            f"found {df.columns}"
        )
        raise InputFormatError(msg)
    return df.rename(rename)


def _drop_excluded(df: pl.DataFrame, state_cols: list[str], table: str) -> pl.DataFrame:
    """Remove rows whose state column(s) name a non-state entity."""
    keep = [
        not any(is_excluded(str(row[c])) for c in state_cols)
        for row in df.select(state_cols).iter_rows(named=True)
    ]
    dropped = len(keep) - sum(keep)
    if dropped:
        print(f"  {table}: dropped {dropped} non-state row(s)")
    return df.filter(pl.Series(keep, dtype=pl.Boolean))


def _canonicalize_states(df: pl.DataFrame, state_cols: list[str], table: str) -> pl.DataFrame:
    """Replace raw state spellings with canonical names."""
    for col in state_cols:
        raw = df[col].to_list()
        if any(v is None for v in raw):
            msg = f"{table} table has an empty value in column {col!r}"
            raise InputFormatError(msg)
        df = df.with_columns(pl.Series(col, [normalize_state_name(str(v)) for v in raw]))
    return df


def _to_float(df: pl.DataFrame, col: str, table: str) -> pl.DataFrame:
    try:
        df = df.with_columns(pl.col(col).cast(pl.Float64, strict=True))
    except pl.exceptions.PolarsError as exc:
        msg = f"{table} column {col!r} is not numeric: {exc}"
        raise InputFormatError(msg) from exc
    n_null = df[col].null_count()
    if n_null:
        msg = f"{table} column {col!r} has {n_null} missing value(s)"
        raise InputFormatError(msg)
    return df


def _require_unique(df: pl.DataFrame, table: str) -> None:
    dupes = df.filter(pl.col("state").is_duplicated())["state"].unique().sort().to_list()
    if dupes:
        msg = f"{table} table lists these states more than once: {dupes}"
        raise InputFormatError(msg)


# ── Loaders ─────────────────────────────────────────────────────────────────


def load_similarity(path: Path) -> pl.DataFrame:
    """Load the dyadic similarity table as (state_i, state_j, proportion)."""
    df = _resolve_columns(read_table(path), SIMILARITY_COLUMNS, "Similarity")
    df = df.select("state_i", "state_j", "proportion")
    df = _drop_excluded(df, ["state_i", "state_j"], "Similarity")
    df = _canonicalize_states(df, ["state_i", "state_j"], "Similarity")
    return _to_float(df, "proportion", "Similarity")


def load_regions(path: Path | None = None) -> pl.DataFrame:
    """Load census region/division labels, or the built-in table when path is None."""
    if path is None:
        return census_table()
    df = _resolve_columns(read_table(path), REGION_COLUMNS, "Census")
    df = df.select(
        "state",
        pl.col("region").cast(pl.String),
        pl.col("division").cast(pl.String),
    )
    df = _drop_excluded(df, ["state"], "Census")
    df = _canonicalize_states(df, ["state"], "Census")
    _require_unique(df, "Census")
    return df


def load_fatalities(path: Path) -> pl.DataFrame:
    """Load fatality counts plus any pct_* cause-share columns."""
    df = _resolve_columns(read_table(path), FATALITY_COLUMNS, "Fatality")
    share_cols = [c for c in df.columns if c.startswith(CAUSE_SHARE_PREFIX)]
    df = df.select("state", "fatalities", *share_cols)
    df = _drop_excluded(df, ["state"], "Fatality")
    df = _canonicalize_states(df, ["state"], "Fatality")
    for col in ["fatalities", *share_cols]:
        df = _to_float(df, col, "Fatality")
    _require_unique(df, "Fatality")
    return df


def observations(similarity: pl.DataFrame) -> list[SimilarityObservation]:
    """Convert a loaded similarity table to value objects."""
    return [
        SimilarityObservation(row["state_i"], row["state_j"], row["proportion"])
        for row in similarity.iter_rows(named=True)
    ]
