"""
Update Engine Module

Performs one dynamic-programming sweep over a StateTable.

Two independent choices select the update rule:

Buffering:
    - SYNCHRONOUS: every new value is computed into ``next_value`` from the
      previous sweep's ``value`` only, then committed in a separate pass.
    - IN_PLACE: each new value is written straight into ``value``, visiting
      cells in row-major order, so later cells see earlier updates.

Combination:
    - EXPECTATION (policy evaluation)
        action-grid:  V(s) = Σ_a p(a) * [r(a) + V(s'_a)]
        reward-grid:  V(s) = r(s) + (V_up + V_right + V_down + V_left) / 4
    - GREEDY (value iteration)
        action-grid:  V(s) = max_a [r(a) + V(s'_a)]
        reward-grid:  V(s) = r(s) + max(V_up, V_right, V_down, V_left) / 4

Terminal cells are never recomputed. A sweep has converged when no
non-terminal value changed, compared with exact float equality unless a
positive tolerance is configured.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from dpgrid.grid_spec import Action, Buffering, Combination, Family, GridOptions
from dpgrid.state_table import StateTable
from dpgrid.transitions import TransitionModel


def action_values(
    table: StateTable,
    model: TransitionModel,
    row: int,
    col: int,
    values: Optional[np.ndarray] = None,
) -> List[Tuple[Action, float]]:
    """
    One-step lookahead ``r(a) + V(s'_a)`` for every action of a cell.

    Args:
        table: The state table.
        model: Transition model of the grid.
        row: Row of the cell.
        col: Column of the cell.
        values: Value array to look successors up in. Defaults to
            ``table.value``.

    Returns:
        List of (action, action value) pairs in action-set order. Empty for
        terminal cells.
    """
    if values is None:
        values = table.value
    return [
        (spec.action, spec.reward + model.successor_value(values, row, col, spec.action))
        for spec in table.actions[row][col]
    ]


class UpdateEngine:
    """
    Sweeps a StateTable under a fixed buffering and combination mode.

    The engine holds no numeric state of its own; everything lives in the
    table passed to ``step``.

    Example:
        >>> options = GridOptions(buffering="in_place")
        >>> engine = UpdateEngine(TransitionModel(4, 8), options)
        >>> table = StateTable.from_spec(GridSpec.reward_grid(4, 8), Family.REWARD_GRID)
        >>> engine.step(table)
        False
    """

    def __init__(self, model: TransitionModel, options: GridOptions) -> None:
        self.model: TransitionModel = model
        self.buffering: Buffering = options.buffering
        self.combination: Combination = options.combination
        self.tolerance: float = options.tolerance
        # Largest absolute change seen in the most recent sweep
        self.last_delta: float = 0.0

    def step(self, table: StateTable) -> bool:
        """
        Perform one full sweep.

        Args:
            table: The table to update in place.

        Returns:
            True iff every non-terminal value is unchanged by the sweep.
        """
        converged = True
        max_delta = 0.0
        in_place = self.buffering is Buffering.IN_PLACE
        target = table.value if in_place else table.next_value

        for row, col in table.non_terminal_cells():
            old_value = float(table.value[row, col])
            new_value = self.cell_value(table, row, col)

            if not self._unchanged(old_value, new_value):
                converged = False
            max_delta = max(max_delta, abs(new_value - old_value))

            target[row, col] = new_value

        if not in_place:
            self._commit(table)

        self.last_delta = max_delta
        return converged

    def cell_value(self, table: StateTable, row: int, col: int) -> float:
        """New value of a single non-terminal cell from the current values."""
        if table.family is Family.REWARD_GRID:
            return self._reward_grid_value(table, row, col)
        return self._action_grid_value(table, row, col)

    def _reward_grid_value(self, table: StateTable, row: int, col: int) -> float:
        neighbours = [
            self.model.successor_value(table.value, row, col, action) for action in Action
        ]
        reward = float(table.reward[row, col])

        if self.combination is Combination.GREEDY:
            return reward + max(neighbours) / 4.0

        total = 0.0
        for v in neighbours:
            total += v
        return reward + total / 4.0

    def _action_grid_value(self, table: StateTable, row: int, col: int) -> float:
        lookahead = action_values(table, self.model, row, col)

        if self.combination is Combination.GREEDY:
            return max(q for _, q in lookahead)

        total = 0.0
        for spec, (_, q) in zip(table.actions[row][col], lookahead):
            total += spec.probability * q
        return total

    def _commit(self, table: StateTable) -> None:
        for row, col in table.non_terminal_cells():
            table.value[row, col] = table.next_value[row, col]

    def _unchanged(self, old_value: float, new_value: float) -> bool:
        if self.tolerance > 0:
            return abs(new_value - old_value) < self.tolerance
        return new_value == old_value

    def __repr__(self) -> str:
        return (
            f"UpdateEngine(buffering={self.buffering.value}, "
            f"combination={self.combination.value}, tolerance={self.tolerance})"
        )
