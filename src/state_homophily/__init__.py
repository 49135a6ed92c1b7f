"""State Homophily - assortative mixing in U.S. state similarity networks."""

__version__ = "0.1.0"

from state_homophily.models import StateNetwork as StateNetwork
from state_homophily.models import StateRecord as StateRecord
from state_homophily.pipeline import run_pipeline as run_pipeline
