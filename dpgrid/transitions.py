"""
Transition Model Module

Maps a (cell, action) pair to the cell whose current value is looked up.
Transitions are deterministic. A move that would leave the grid either
bounces back onto the acting cell (``Boundary.BOUNCE``) or sees an empty
neighbour worth 0.0 (``Boundary.ZERO``, returned as ``None``).
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from dpgrid.grid_spec import ACTION_DELTAS, Action, Boundary, Coord

# Marker stored in the successor table for "no neighbour" under Boundary.ZERO
OUTSIDE = -1


class TransitionModel:
    """
    Deterministic 4-connected transitions on a rectangular grid.

    The successor of every (row, col, action) triple is computed once at
    construction and stored in ``successors``, an int array of shape
    (num_rows, num_cols, 4, 2). Entries equal to ``OUTSIDE`` mark moves that
    leave the grid under ``Boundary.ZERO``.

    Example:
        >>> model = TransitionModel(4, 4)
        >>> model.successor(0, 0, Action.UP)
        (0, 0)
        >>> model.successor(0, 0, Action.RIGHT)
        (0, 1)
    """

    def __init__(
        self,
        num_rows: int,
        num_cols: int,
        boundary: Boundary = Boundary.BOUNCE,
    ) -> None:
        self.num_rows: int = num_rows
        self.num_cols: int = num_cols
        self.boundary: Boundary = Boundary(boundary)
        self.successors: np.ndarray = self._build_successor_table()

    def _build_successor_table(self) -> np.ndarray:
        """
        Build the successor table.

        For each cell and action, determines the cell whose value is used.
        If the action would lead out of bounds, the agent stays in place
        (or, under Boundary.ZERO, no cell is used).

        Returns:
            Int array of shape (num_rows, num_cols, 4, 2).
        """
        table = np.empty((self.num_rows, self.num_cols, len(Action), 2), dtype=np.int64)

        for row in range(self.num_rows):
            for col in range(self.num_cols):
                for action in Action:
                    delta_row, delta_col = ACTION_DELTAS[action]
                    new_row = row + delta_row
                    new_col = col + delta_col

                    if self.in_bounds(new_row, new_col):
                        table[row, col, int(action)] = (new_row, new_col)
                    elif self.boundary is Boundary.BOUNCE:
                        table[row, col, int(action)] = (row, col)
                    else:
                        table[row, col, int(action)] = (OUTSIDE, OUTSIDE)

        return table

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.num_rows and 0 <= col < self.num_cols

    def successor(self, row: int, col: int, action: Action) -> Optional[Coord]:
        """
        Cell reached by taking ``action`` in (row, col).

        Returns:
            The successor coordinate, the acting cell itself for a bounce,
            or None when the move leaves the grid under Boundary.ZERO.
        """
        assert self.in_bounds(row, col), f"cell ({row}, {col}) outside grid"
        next_row, next_col = self.successors[row, col, int(action)]
        if next_row == OUTSIDE:
            return None
        return int(next_row), int(next_col)

    def successor_value(self, values: np.ndarray, row: int, col: int, action: Action) -> float:
        """Current value of the successor cell, 0.0 for an empty neighbour."""
        target = self.successor(row, col, action)
        if target is None:
            return 0.0
        return float(values[target])

    def __repr__(self) -> str:
        return (
            f"TransitionModel(num_rows={self.num_rows}, num_cols={self.num_cols}, "
            f"boundary={self.boundary.value})"
        )
