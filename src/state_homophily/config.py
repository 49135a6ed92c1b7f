"""Configuration constants for the state homophily analysis."""

SIMILARITY_QUANTILE = 0.9  # edges keep pairs strictly above this percentile
SWEEP_QUANTILES = [0.80, 0.85, 0.90, 0.95]
EXPECTED_STATE_COUNT = 50
RANDOM_SEED = 42

# Non-state entities present in the raw survey/fatality tables
EXCLUDED_ENTITIES = ("District of Columbia",)

# Accepted header spellings, matched after lower-casing and normalizing separators
SIMILARITY_COLUMNS = {
    "state_i": ("state_i", "state1", "state_1", "statei", "from", "source"),
    "state_j": ("state_j", "state2", "state_2", "statej", "to", "target"),
    "proportion": ("proportion", "prop", "similarity", "weight"),
}
REGION_COLUMNS = {
    "state": ("state", "state_name", "name"),
    "region": ("region", "census_region"),
    "division": ("division", "census_division"),
}
FATALITY_COLUMNS = {
    "state": ("state", "state_name", "name"),
    "fatalities": ("fatalities", "fatals", "deaths", "fatal_accidents"),
}
CAUSE_SHARE_PREFIX = "pct_"

REGION_COLORS = {
    "Northeast": "#1B9E77",
    "Midwest": "#D95F02",
    "South": "#7570B3",
    "West": "#E7298A",
}
DIVISION_COLORS = {
    "New England": "#A6CEE3",
    "Middle Atlantic": "#1F78B4",
    "East North Central": "#FDBF6F",
    "West North Central": "#FF7F00",
    "South Atlantic": "#CAB2D6",
    "East South Central": "#6A3D9A",
    "West South Central": "#B15928",
    "Mountain": "#FB9A99",
    "Pacific": "#E31A1C",
}
