"""U.S. state reference data: names, postal codes, census geography, map tiles.

Region / Division mapping (U.S. Census Bureau):
  Northeast  -> New England, Middle Atlantic
  Midwest    -> East North Central, West North Central
  South      -> South Atlantic, East South Central, West South Central
  West       -> Mountain, Pacific

Each state also has a (row, col) cell in an 8 x 11 tile grid used to draw
choropleth maps without shapefiles.
"""

import re
from dataclasses import dataclass

import polars as pl

from state_homophily.config import EXCLUDED_ENTITIES
from state_homophily.errors import MissingStateError


@dataclass(frozen=True)
class StateInfo:
    """Static facts about one state."""

    name: str
    abbreviation: str
    region: str
    division: str
    tile_row: int
    tile_col: int


# fmt: off
STATES: tuple[StateInfo, ...] = (
    StateInfo("Alabama",        "AL", "South",     "East South Central", 6, 6),
    StateInfo("Alaska",         "AK", "West",      "Pacific",            0, 0),
    StateInfo("Arizona",        "AZ", "West",      "Mountain",           5, 1),
    StateInfo("Arkansas",       "AR", "South",     "West South Central", 5, 4),
    StateInfo("California",     "CA", "West",      "Pacific",            4, 0),
    StateInfo("Colorado",       "CO", "West",      "Mountain",           4, 2),
    StateInfo("Connecticut",    "CT", "Northeast", "New England",        3, 9),
    StateInfo("Delaware",       "DE", "South",     "South Atlantic",     4, 9),
    StateInfo("Florida",        "FL", "South",     "South Atlantic",     7, 8),
    StateInfo("Georgia",        "GA", "South",     "South Atlantic",     6, 7),
    StateInfo("Hawaii",         "HI", "West",      "Pacific",            7, 0),
    StateInfo("Idaho",          "ID", "West",      "Mountain",           2, 1),
    StateInfo("Illinois",       "IL", "Midwest",   "East North Central", 2, 5),
    StateInfo("Indiana",        "IN", "Midwest",   "East North Central", 3, 5),
    StateInfo("Iowa",           "IA", "Midwest",   "West North Central", 3, 4),
    StateInfo("Kansas",         "KS", "Midwest",   "West North Central", 5, 3),
    StateInfo("Kentucky",       "KY", "South",     "East South Central", 4, 5),
    StateInfo("Louisiana",      "LA", "South",     "West South Central", 6, 4),
    StateInfo("Maine",          "ME", "Northeast", "New England",        0, 10),
    StateInfo("Maryland",       "MD", "South",     "South Atlantic",     4, 8),
    StateInfo("Massachusetts",  "MA", "Northeast", "New England",        2, 9),
    StateInfo("Michigan",       "MI", "Midwest",   "East North Central", 2, 6),
    StateInfo("Minnesota",      "MN", "Midwest",   "West North Central", 2, 4),
    StateInfo("Mississippi",    "MS", "South",     "East South Central", 6, 5),
    StateInfo("Missouri",       "MO", "Midwest",   "West North Central", 4, 4),
    StateInfo("Montana",        "MT", "West",      "Mountain",           2, 2),
    StateInfo("Nebraska",       "NE", "Midwest",   "West North Central", 4, 3),
    StateInfo("Nevada",         "NV", "West",      "Mountain",           3, 1),
    StateInfo("New Hampshire",  "NH", "Northeast", "New England",        1, 10),
    StateInfo("New Jersey",     "NJ", "Northeast", "Middle Atlantic",    3, 8),
    StateInfo("New Mexico",     "NM", "West",      "Mountain",           5, 2),
    StateInfo("New York",       "NY", "Northeast", "Middle Atlantic",    2, 8),
    StateInfo("North Carolina", "NC", "South",     "South Atlantic",     5, 6),
    StateInfo("North Dakota",   "ND", "Midwest",   "West North Central", 2, 3),
    StateInfo("Ohio",           "OH", "Midwest",   "East North Central", 3, 6),
    StateInfo("Oklahoma",       "OK", "South",     "West South Central", 6, 3),
    StateInfo("Oregon",         "OR", "West",      "Pacific",            3, 0),
    StateInfo("Pennsylvania",   "PA", "Northeast", "Middle Atlantic",    3, 7),
    StateInfo("Rhode Island",   "RI", "Northeast", "New England",        3, 10),
    StateInfo("South Carolina", "SC", "South",     "South Atlantic",     5, 7),
    StateInfo("South Dakota",   "SD", "Midwest",   "West North Central", 3, 3),
    StateInfo("Tennessee",      "TN", "South",     "East South Central", 5, 5),
    StateInfo("Texas",          "TX", "South",     "West South Central", 7, 3),
    StateInfo("Utah",           "UT", "West",      "Mountain",           4, 1),
    StateInfo("Vermont",        "VT", "Northeast", "New England",        1, 9),
    StateInfo("Virginia",       "VA", "South",     "South Atlantic",     4, 7),
    StateInfo("Washington",     "WA", "West",      "Pacific",            2, 0),
    StateInfo("West Virginia",  "WV", "South",     "South Atlantic",     4, 6),
    StateInfo("Wisconsin",      "WI", "Midwest",   "East North Central", 1, 5),
    StateInfo("Wyoming",        "WY", "West",      "Mountain",           3, 2),
)
# fmt: on

STATE_NAMES: tuple[str, ...] = tuple(s.name for s in STATES)
BY_NAME: dict[str, StateInfo] = {s.name: s for s in STATES}

_EXCLUDED_ALIASES = {"dc", "d c", "washington dc", "washington d c"}


def _key(raw: str) -> str:
    """Casefold and collapse separators: ' new_york. ' -> 'new york'."""
    cleaned = re.sub(r"[_.,\-]+", " ", str(raw))
    return re.sub(r"\s+", " ", cleaned).strip().casefold()


_LOOKUP: dict[str, str] = {}
for _s in STATES:
    _LOOKUP[_key(_s.name)] = _s.name
    _LOOKUP[_key(_s.abbreviation)] = _s.name

_EXCLUDED_KEYS = {_key(e) for e in EXCLUDED_ENTITIES} | _EXCLUDED_ALIASES


def is_excluded(raw: str) -> bool:
    """True for non-state entities (District of Columbia and its spellings)."""
    return _key(raw) in _EXCLUDED_KEYS


def normalize_state_name(raw: str) -> str:
    """Map a name or postal code in any case/spacing to the canonical state name.

    Raises MissingStateError for anything that is not one of the 50 states.
    """
    key = _key(raw)
    if key in _LOOKUP:
        return _LOOKUP[key]
    msg = f"Unknown state name: {raw!r}"
    raise MissingStateError(msg, [str(raw)])


def census_table() -> pl.DataFrame:
    """Region/division table for all 50 states, shaped like a loaded census file."""
    return pl.DataFrame(
        {
            "state": [s.name for s in STATES],
            "region": [s.region for s in STATES],
            "division": [s.division for s in STATES],
        }
    )
