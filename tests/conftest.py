"""Shared fixtures for the pipeline, CLI, output, and analysis tests."""

import pytest

from synthetic import make_fatalities, make_similarity


@pytest.fixture
def input_files(tmp_path):
    """Similarity and fatality CSVs on disk; returns (similarity_path, fatalities_path)."""
    sim_path = tmp_path / "similarity.csv"
    fat_path = tmp_path / "fatalities.csv"
    make_similarity().write_csv(sim_path)
    make_fatalities().write_csv(fat_path)
    return sim_path, fat_path
