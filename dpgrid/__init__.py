"""
dpgrid: Dynamic-programming sweeps on deterministic grid-world MDPs.

This package provides tools for:
- Describing rectangular grid worlds (reward-grid and action-grid families)
- Deterministic wall-bounce transitions
- Policy evaluation and value iteration with synchronous or in-place sweeps
- Greedy policy improvement
- Text and matplotlib rendering of the converging grid
"""

from dpgrid.grid_spec import (
    Action,
    ActionSpec,
    Boundary,
    Buffering,
    Combination,
    Family,
    GridOptions,
    GridSpec,
)
from dpgrid.state_table import StateTable
from dpgrid.transitions import TransitionModel
from dpgrid.engine import UpdateEngine, action_values
from dpgrid.policies import PolicyImprover, greedy_action
from dpgrid.grid_world import GridWorld
from dpgrid.utils import (
    format_values,
    format_policy,
    visualize_values,
)

__version__ = "0.1.0"
__all__ = [
    "Action",
    "ActionSpec",
    "Boundary",
    "Buffering",
    "Combination",
    "Family",
    "GridOptions",
    "GridSpec",
    "StateTable",
    "TransitionModel",
    "UpdateEngine",
    "action_values",
    "PolicyImprover",
    "greedy_action",
    "GridWorld",
    "format_values",
    "format_policy",
    "visualize_values",
]
