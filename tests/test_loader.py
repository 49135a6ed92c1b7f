"""
Tests for the table loaders in loader.py.

Each test writes a small table to tmp_path and checks column resolution,
DC removal, state-name canonicalization, and the error raised for bad input.

Run: uv run pytest tests/test_loader.py -v
"""

import pandas as pd
import polars as pl
import pytest

from state_homophily.errors import InputFormatError, MissingStateError
from state_homophily.loader import (
    load_fatalities,
    load_regions,
    load_similarity,
    observations,
    read_table,
)
from state_homophily.models import SimilarityObservation

# ── read_table() ─────────────────────────────────────────────────────────────


class TestReadTable:
    """Format dispatch by file extension."""

    def test_csv(self, tmp_path):
        path = tmp_path / "t.csv"
        pl.DataFrame({"a": [1, 2]}).write_csv(path)
        assert read_table(path)["a"].to_list() == [1, 2]

    def test_tsv(self, tmp_path):
        path = tmp_path / "t.tsv"
        path.write_text("a\tb\n1\tx\n", encoding="utf-8")
        df = read_table(path)
        assert df.columns == ["a", "b"]

    def test_parquet(self, tmp_path):
        path = tmp_path / "t.parquet"
        pl.DataFrame({"a": [1.5]}).write_parquet(path)
        assert read_table(path)["a"].to_list() == [1.5]

    def test_stata(self, tmp_path):
        path = tmp_path / "t.dta"
        pd.DataFrame({"state": ["Ohio"], "fatalities": [1000.0]}).to_stata(path, write_index=False)
        df = read_table(path)
        assert df["state"].to_list() == ["Ohio"]
        assert df["fatalities"].to_list() == [1000.0]

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "t.xlsx"
        path.write_bytes(b"")
        with pytest.raises(InputFormatError, match="Unsupported"):
            read_table(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputFormatError, match="not found"):
            read_table(tmp_path / "nope.csv")


# ── load_similarity() ────────────────────────────────────────────────────────


class TestLoadSimilarity:
    """Dyadic similarity table: (state_i, state_j, proportion)."""

    def test_canonical_columns(self, tmp_path):
        path = tmp_path / "sim.csv"
        pl.DataFrame(
            {"State1": ["ohio"], "State2": ["IN"], "Prop": [0.4], "extra": ["x"]}
        ).write_csv(path)
        df = load_similarity(path)
        assert df.columns == ["state_i", "state_j", "proportion"]
        assert df.row(0) == ("Ohio", "Indiana", 0.4)

    def test_drops_dc_on_either_side(self, tmp_path):
        path = tmp_path / "sim.csv"
        pl.DataFrame(
            {
                "state_i": ["Ohio", "District of Columbia", "Maryland"],
                "state_j": ["Indiana", "Maryland", "D.C."],
                "proportion": [0.4, 0.9, 0.8],
            }
        ).write_csv(path)
        df = load_similarity(path)
        assert df.height == 1
        assert df["state_i"].to_list() == ["Ohio"]

    def test_unknown_state_raises(self, tmp_path):
        path = tmp_path / "sim.csv"
        pl.DataFrame(
            {"state_i": ["Ohio"], "state_j": ["Puerto Rico"], "proportion": [0.2]}
        ).write_csv(path)
        with pytest.raises(MissingStateError, match="Puerto Rico"):
            load_similarity(path)

    def test_missing_column_raises(self, tmp_path):
        path = tmp_path / "sim.csv"
        pl.DataFrame({"state_i": ["Ohio"], "state_j": ["Iowa"]}).write_csv(path)
        with pytest.raises(InputFormatError, match="proportion"):
            load_similarity(path)

    def test_non_numeric_proportion_raises(self, tmp_path):
        path = tmp_path / "sim.csv"
        pl.DataFrame(
            {"state_i": ["Ohio", "Iowa"], "state_j": ["Iowa", "Ohio"], "proportion": ["0.2", "high"]}
        ).write_csv(path)
        with pytest.raises(InputFormatError, match="not numeric"):
            load_similarity(path)

    def test_missing_proportion_raises(self, tmp_path):
        path = tmp_path / "sim.csv"
        path.write_text("state_i,state_j,proportion\nOhio,Iowa,\nIowa,Ohio,0.3\n", encoding="utf-8")
        with pytest.raises(InputFormatError, match="missing"):
            load_similarity(path)

    def test_observations(self, tmp_path):
        path = tmp_path / "sim.csv"
        pl.DataFrame(
            {"state_i": ["Ohio"], "state_j": ["Iowa"], "proportion": [0.25]}
        ).write_csv(path)
        obs = observations(load_similarity(path))
        assert obs == [SimilarityObservation("Ohio", "Iowa", 0.25)]


# ── load_regions() ───────────────────────────────────────────────────────────


class TestLoadRegions:
    """Census region/division lookup."""

    def test_builtin_when_no_path(self):
        df = load_regions(None)
        assert df.height == 50

    def test_file_with_aliases(self, tmp_path):
        path = tmp_path / "regions.csv"
        pl.DataFrame(
            {
                "Name": ["kansas", "District of Columbia"],
                "Census Region": ["Midwest", "South"],
                "Census Division": ["West North Central", "South Atlantic"],
            }
        ).write_csv(path)
        df = load_regions(path)
        assert df.rows() == [("Kansas", "Midwest", "West North Central")]

    def test_duplicate_state_raises(self, tmp_path):
        path = tmp_path / "regions.csv"
        pl.DataFrame(
            {
                "state": ["Kansas", "KS"],
                "region": ["Midwest", "Midwest"],
                "division": ["West North Central", "West North Central"],
            }
        ).write_csv(path)
        with pytest.raises(InputFormatError, match="more than once"):
            load_regions(path)


# ── load_fatalities() ────────────────────────────────────────────────────────


class TestLoadFatalities:
    """Fatality counts plus pct_* cause-share columns."""

    def test_keeps_share_columns(self, tmp_path):
        path = tmp_path / "fatal.csv"
        pl.DataFrame(
            {
                "State": ["Ohio", "Iowa"],
                "Fatalities": [1000, 300],
                "Pct Alcohol": [30.0, 25.0],
                "Region": ["x", "y"],
            }
        ).write_csv(path)
        df = load_fatalities(path)
        assert df.columns == ["state", "fatalities", "pct_alcohol"]
        assert df["fatalities"].dtype == pl.Float64

    def test_drops_dc(self, input_files):
        _, fat_path = input_files
        df = load_fatalities(fat_path)
        assert df.height == 50
        assert "District of Columbia" not in df["state"].to_list()

    def test_missing_fatalities_column(self, tmp_path):
        path = tmp_path / "fatal.csv"
        pl.DataFrame({"state": ["Ohio"], "count": [3]}).write_csv(path)
        with pytest.raises(InputFormatError, match="fatalities"):
            load_fatalities(path)
