"""
State Table Module

The StateTable owns every mutable per-cell number of a grid world:
    - value: current value estimate
    - next_value: staging buffer used between compute and commit of a
      synchronous sweep (not authoritative anywhere else)
    - reward: scalar reward of the cell (reward-grid family)
    - policy: index of the selected Action, -1 where there is none

Per-cell action sets and the terminal mask are fixed at construction.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from dpgrid.grid_spec import Action, ActionSpec, Family, GridSpec

# Implicit moves of a reward-grid cell, used only for greedy policy extraction
NEIGHBOR_MOVES: Tuple[ActionSpec, ...] = tuple(ActionSpec(a, 0.25, 0.0) for a in Action)

NO_POLICY = -1


class StateTable:
    """
    Dense per-cell storage for a grid world.

    Attributes:
        num_rows: Number of rows.
        num_cols: Number of columns.
        family: State family the table was built for.
        value: Float array of shape (num_rows, num_cols).
        next_value: Float array of shape (num_rows, num_cols).
        reward: Float array of shape (num_rows, num_cols).
        policy: Int array of shape (num_rows, num_cols), -1 for no policy.
        terminal: Bool array of shape (num_rows, num_cols).
        actions: Nested list; actions[row][col] is the cell's action tuple.

    Example:
        >>> table = StateTable.from_spec(GridSpec.reward_grid(4, 8), Family.REWARD_GRID)
        >>> table.value[0, 0]
        1.0
    """

    def __init__(
        self,
        num_rows: int,
        num_cols: int,
        family: Family,
        reward: np.ndarray,
        terminal: np.ndarray,
        actions: List[List[Tuple[ActionSpec, ...]]],
        initial_value: np.ndarray,
    ) -> None:
        self.num_rows: int = num_rows
        self.num_cols: int = num_cols
        self.family: Family = Family(family)
        self.reward: np.ndarray = reward.astype(np.float64)
        self.terminal: np.ndarray = terminal.astype(bool)
        self.actions: List[List[Tuple[ActionSpec, ...]]] = actions
        self.value: np.ndarray = initial_value.astype(np.float64)
        self.next_value: np.ndarray = self.value.copy()

        self.policy: np.ndarray = np.full((num_rows, num_cols), NO_POLICY, dtype=np.int64)
        for row, col in self.non_terminal_cells():
            self.policy[row, col] = int(self.actions[row][col][0].action)

    @classmethod
    def from_spec(cls, spec: GridSpec, family: Family) -> "StateTable":
        """
        Build a table from an immutable GridSpec.

        Terminal cells start at their terminal value (or their reward when no
        terminal value is given). All other cells start at 0.0.
        """
        family = Family(family)
        shape = (spec.num_rows, spec.num_cols)

        reward = np.zeros(shape, dtype=np.float64)
        for (row, col), r in spec.rewards.items():
            reward[row, col] = r

        terminal = np.zeros(shape, dtype=bool)
        initial_value = np.zeros(shape, dtype=np.float64)
        actions: List[List[Tuple[ActionSpec, ...]]] = []

        for row in range(spec.num_rows):
            row_actions = []
            for col in range(spec.num_cols):
                cell = (row, col)
                if family is Family.ACTION_GRID:
                    cell_actions = spec.actions_for(cell)
                else:
                    cell_actions = () if cell in spec.terminals else NEIGHBOR_MOVES

                if cell in spec.terminals:
                    terminal[row, col] = True
                    initial_value[row, col] = spec.terminal_values.get(cell, reward[row, col])
                row_actions.append(cell_actions)
            actions.append(row_actions)

        return cls(spec.num_rows, spec.num_cols, family, reward, terminal, actions, initial_value)

    def cells(self):
        """All cells in row-major order."""
        for row in range(self.num_rows):
            for col in range(self.num_cols):
                yield row, col

    def non_terminal_cells(self):
        """Non-terminal cells in row-major order."""
        for row, col in self.cells():
            if not self.terminal[row, col]:
                yield row, col

    def check_cell(self, row: int, col: int) -> None:
        """
        Raises:
            ValueError: If (row, col) is outside the grid.
        """
        if not (0 <= row < self.num_rows and 0 <= col < self.num_cols):
            raise ValueError(
                f"Invalid cell ({row}, {col}). Must be in "
                f"[0, {self.num_rows - 1}] x [0, {self.num_cols - 1}]"
            )

    def policy_action(self, row: int, col: int) -> Optional[Action]:
        index = int(self.policy[row, col])
        if index == NO_POLICY:
            return None
        return Action(index)

    def __repr__(self) -> str:
        return (
            f"StateTable(num_rows={self.num_rows}, num_cols={self.num_cols}, "
            f"family={self.family.value}, n_terminal={int(self.terminal.sum())})"
        )
