"""
GridWorld Module

This module provides the GridWorld class, the single entry point a driver or
renderer talks to. It wires a GridSpec, a StateTable, a TransitionModel, an
UpdateEngine and (optionally) a PolicyImprover together.

A driver calls ``step()`` until it returns True. A renderer reads the grid
through ``value_at``, ``policy_at`` and ``is_terminal`` and never mutates it.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple

import numpy as np

from dpgrid.engine import UpdateEngine
from dpgrid.grid_spec import Action, ActionSpec, GridOptions, GridSpec
from dpgrid.policies import PolicyImprover, policy_array
from dpgrid.state_table import StateTable
from dpgrid.transitions import TransitionModel

logger = logging.getLogger(__name__)


class GridWorld:
    """
    A grid-world MDP solved by dynamic-programming sweeps.

    A sweep is atomic from the caller's point of view: ``step`` holds an
    internal lock for the whole sweep, and every accessor takes the same lock,
    so no reader ever observes a half-updated grid.

    Attributes:
        spec: The immutable grid description.
        options: The runtime configuration.
        table: The StateTable holding all numeric state.
        model: The TransitionModel of the grid.
        engine: The UpdateEngine performing sweeps.
        improver: The PolicyImprover, or None when policy improvement is off.
        sweeps: Number of sweeps performed so far.
        converged: Result of the most recent ``step``.

    Example:
        >>> world = GridWorld(4, 8, GridOptions(buffering="in_place"))
        >>> sweeps = world.run(max_sweeps=100_000)
        >>> world.converged
        True
    """

    def __init__(
        self,
        num_rows: int,
        num_cols: int,
        options: Optional[GridOptions] = None,
        spec: Optional[GridSpec] = None,
    ) -> None:
        """
        Initialize a GridWorld.

        Args:
            num_rows: Number of rows.
            num_cols: Number of columns.
            options: Runtime configuration. Defaults to ``GridOptions()``.
            spec: Grid description. Defaults to the classic layout of the
                configured family.

        Raises:
            ValueError: If the configuration is invalid.
        """
        if options is None:
            options = GridOptions()
        if not isinstance(options, GridOptions):
            raise ValueError(f"options must be a GridOptions, got {type(options).__name__}")
        if spec is None:
            spec = GridSpec.default(num_rows, num_cols, options.family)
        if (spec.num_rows, spec.num_cols) != (num_rows, num_cols):
            raise ValueError(
                f"Spec dimensions {spec.num_rows}x{spec.num_cols} do not match "
                f"requested {num_rows}x{num_cols}"
            )

        self.spec: GridSpec = spec
        self.options: GridOptions = options
        self.table: StateTable = StateTable.from_spec(spec, options.family)
        self.model: TransitionModel = TransitionModel(
            spec.num_rows, spec.num_cols, options.boundary
        )
        self.engine: UpdateEngine = UpdateEngine(self.model, options)
        self.improver: Optional[PolicyImprover] = (
            PolicyImprover(self.model) if options.improve_policy else None
        )
        self.sweeps: int = 0
        self.converged: bool = False
        self._lock = threading.RLock()

    @classmethod
    def from_spec(cls, spec: GridSpec, options: Optional[GridOptions] = None) -> "GridWorld":
        """Build a GridWorld from an explicit GridSpec."""
        return cls(spec.num_rows, spec.num_cols, options, spec=spec)

    @property
    def num_rows(self) -> int:
        return self.spec.num_rows

    @property
    def num_cols(self) -> int:
        return self.spec.num_cols

    def step(self) -> bool:
        """
        Perform one sweep, plus a policy refresh when enabled.

        Returns:
            True iff no non-terminal value changed during the sweep (and,
            with ``require_stable_policy``, no policy changed either).
        """
        with self._lock:
            converged = self.engine.step(self.table)
            if self.improver is not None:
                stable = self.improver.refresh(self.table)
                if self.options.require_stable_policy:
                    converged = converged and stable
            self.sweeps += 1
            self.converged = converged
            logger.debug(
                "Sweep %d: max delta %.6g, converged=%s",
                self.sweeps, self.engine.last_delta, converged,
            )
        return converged

    def run(self, max_sweeps: int = 10_000) -> int:
        """
        Step until convergence or until ``max_sweeps`` sweeps were performed.

        Returns:
            Number of sweeps performed by this call.
        """
        if max_sweeps < 0:
            raise ValueError(f"max_sweeps must be non-negative, got {max_sweeps}")

        performed = 0
        while performed < max_sweeps:
            performed += 1
            if self.step():
                logger.info("Converged after %d steps.", self.sweeps - 1)
                break
        else:
            logger.info("Stopped after %d sweeps without converging", performed)
        return performed

    def value_at(self, row: int, col: int) -> float:
        """Current value of a cell."""
        with self._lock:
            self.table.check_cell(row, col)
            return float(self.table.value[row, col])

    def policy_at(self, row: int, col: int) -> Optional[Action]:
        """Selected action of a cell, None for terminal cells."""
        with self._lock:
            self.table.check_cell(row, col)
            return self.table.policy_action(row, col)

    def is_terminal(self, row: int, col: int) -> bool:
        with self._lock:
            self.table.check_cell(row, col)
            return bool(self.table.terminal[row, col])

    def reward_at(self, row: int, col: int) -> float:
        with self._lock:
            self.table.check_cell(row, col)
            return float(self.table.reward[row, col])

    def actions_at(self, row: int, col: int) -> Tuple[ActionSpec, ...]:
        with self._lock:
            self.table.check_cell(row, col)
            return self.table.actions[row][col]

    def values(self) -> np.ndarray:
        """Copy of the value table, shape (num_rows, num_cols)."""
        with self._lock:
            return self.table.value.copy()

    def policies(self) -> np.ndarray:
        """Copy of the policy table (Action indices, -1 for terminals)."""
        with self._lock:
            return policy_array(self.table)

    def __repr__(self) -> str:
        return (
            f"GridWorld(num_rows={self.num_rows}, num_cols={self.num_cols}, "
            f"family={self.options.family.value}, buffering={self.options.buffering.value}, "
            f"combination={self.options.combination.value}, sweeps={self.sweeps})"
        )
