"""
Policy Module

Greedy policy extraction from a value function.

A policy is stored in the StateTable as one Action index per cell (-1 for
terminal cells). ``PolicyImprover.refresh`` recomputes it as

    π(s) = argmax_a [r(a) + V(s'_a)]

with a strict greater-than comparison, so on ties the first action in the
cell's action set (Up, Right, Down, Left by default) wins.

Utility functions:
    - greedy_action: Greedy action of a single cell
    - policy_array: Copy of the policy as an int array
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from dpgrid.engine import action_values
from dpgrid.grid_spec import Action
from dpgrid.state_table import StateTable
from dpgrid.transitions import TransitionModel


def greedy_action(
    table: StateTable,
    model: TransitionModel,
    row: int,
    col: int,
) -> Optional[Action]:
    """
    Action maximising the one-step lookahead at (row, col).

    Returns:
        The first action reaching the maximum, or None for terminal cells.

    Example:
        >>> table = StateTable.from_spec(GridSpec.action_grid(4, 4), Family.ACTION_GRID)
        >>> greedy_action(table, TransitionModel(4, 4), 1, 1)
        <Action.UP: 0>
    """
    best_action: Optional[Action] = None
    best_value = 0.0
    for action, q in action_values(table, model, row, col):
        if best_action is None or q > best_value:
            best_action = action
            best_value = q
    return best_action


class PolicyImprover:
    """
    Post-sweep pass that makes every non-terminal policy greedy.

    Terminal cells are never touched.
    """

    def __init__(self, model: TransitionModel) -> None:
        self.model: TransitionModel = model
        # Number of cells whose policy changed in the most recent refresh
        self.last_changes: int = 0

    def refresh(self, table: StateTable) -> bool:
        """
        Recompute the greedy policy of every non-terminal cell.

        Args:
            table: The table whose ``policy`` array is updated in place.

        Returns:
            True if no policy changed (the policy is stable).
        """
        changes = 0
        for row, col in table.non_terminal_cells():
            action = greedy_action(table, self.model, row, col)
            if int(table.policy[row, col]) != int(action):
                table.policy[row, col] = int(action)
                changes += 1

        self.last_changes = changes
        return changes == 0


def policy_array(table: StateTable) -> np.ndarray:
    """
    Copy of the policy.

    Returns:
        Int array of shape (num_rows, num_cols) with Action indices and -1
        for terminal cells.
    """
    return table.policy.copy()
