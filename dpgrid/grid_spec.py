"""
Grid Specification Module

This module describes *what* a grid world looks like before any sweep runs:
its dimensions, where rewards sit, which cells are terminal, and which
actions each cell offers. It also holds the runtime options that select how
the update engine sweeps the grid.

Two state families are supported:
    - Reward-grid: every cell carries a scalar reward and its new value is
      derived from its four neighbours. Terminal cells are flagged explicitly.
    - Action-grid: every cell carries an ordered list of actions, each with a
      fixed probability and reward. A cell is terminal iff its list is empty.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Tuple

# Coordinate type for grid positions: (row, col)
Coord = Tuple[int, int]


class Action(IntEnum):
    """The four grid moves, in their tie-breaking order."""

    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    @property
    def delta(self) -> Coord:
        return ACTION_DELTAS[self]

    @property
    def arrow(self) -> str:
        return ACTION_ARROWS[self]


# Movement deltas: (delta_row, delta_col) for each action
ACTION_DELTAS: Dict[Action, Coord] = {
    Action.UP: (-1, 0),     # up: decrease row
    Action.RIGHT: (0, 1),   # right: increase col
    Action.DOWN: (1, 0),    # down: increase row
    Action.LEFT: (0, -1),   # left: decrease col
}

ACTION_ARROWS: Dict[Action, str] = {
    Action.UP: "↑",
    Action.RIGHT: "→",
    Action.DOWN: "↓",
    Action.LEFT: "←",
}


class Family(str, Enum):
    """Which state representation the grid uses."""

    REWARD_GRID = "reward_grid"
    ACTION_GRID = "action_grid"


class Buffering(str, Enum):
    """How a sweep commits its results."""

    SYNCHRONOUS = "synchronous"
    IN_PLACE = "in_place"


class Combination(str, Enum):
    """How a cell's new value is derived from its successors."""

    EXPECTATION = "expectation"
    GREEDY = "greedy"


class Boundary(str, Enum):
    """What an out-of-grid move sees."""

    BOUNCE = "bounce"  # stay in place, use own value
    ZERO = "zero"      # neighbour outside the grid contributes 0.0


@dataclass(frozen=True)
class ActionSpec:
    """An action available in a state, weighted under the evaluated policy."""

    action: Action
    probability: float = 0.25
    reward: float = -1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "action", Action(self.action))
        object.__setattr__(self, "probability", float(self.probability))
        object.__setattr__(self, "reward", float(self.reward))


def uniform_actions(probability: float = 0.25, reward: float = -1.0) -> Tuple[ActionSpec, ...]:
    """Four actions in Up, Right, Down, Left order with identical weights."""
    return tuple(ActionSpec(a, probability, reward) for a in Action)


def _grid_dimension(value) -> int:
    """Coerce an integer-like grid dimension (e.g. numpy.int64) to int."""
    if isinstance(value, bool):
        raise ValueError("Grid dimensions must be integers")
    try:
        return operator.index(value)
    except TypeError:
        raise ValueError("Grid dimensions must be integers") from None


@dataclass(frozen=True)
class GridOptions:
    """
    Runtime configuration for a GridWorld.

    Attributes:
        family: State representation (reward-grid or action-grid).
        buffering: Synchronous two-buffer sweeps or in-place sweeps.
        combination: Expected value under the fixed policy, or greedy max.
        improve_policy: Recompute the greedy policy after every sweep.
        boundary: Behaviour of moves that would leave the grid.
        tolerance: 0.0 means convergence is exact float equality; a positive
            value accepts ``abs(new - old) < tolerance``.
        require_stable_policy: Only report convergence once a policy refresh
            leaves every policy unchanged. Needs ``improve_policy``.
    """

    family: Family = Family.REWARD_GRID
    buffering: Buffering = Buffering.SYNCHRONOUS
    combination: Combination = Combination.EXPECTATION
    improve_policy: bool = False
    boundary: Boundary = Boundary.BOUNCE
    tolerance: float = 0.0
    require_stable_policy: bool = False

    def __post_init__(self) -> None:
        # Accept plain strings ("in_place") as well as enum members.
        for name, enum_type in (
            ("family", Family),
            ("buffering", Buffering),
            ("combination", Combination),
            ("boundary", Boundary),
        ):
            raw = getattr(self, name)
            try:
                object.__setattr__(self, name, enum_type(raw))
            except ValueError:
                valid = [m.value for m in enum_type]
                raise ValueError(
                    f"Invalid {name} {raw!r}. Valid values are: {valid}"
                ) from None

        if self.tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {self.tolerance}")
        if self.require_stable_policy and not self.improve_policy:
            raise ValueError("require_stable_policy needs improve_policy=True")


@dataclass(frozen=True)
class GridSpec:
    """
    Immutable description of a grid world.

    Attributes:
        num_rows: Number of rows (> 0).
        num_cols: Number of columns (> 0).
        terminals: Cells whose value is frozen for the whole run.
        rewards: Scalar reward per cell (reward-grid family). Missing cells
            have reward 0.0.
        terminal_values: Initial value of terminal cells. Missing terminals
            start at their reward.
        default_actions: Action set of every non-terminal cell (action-grid
            family) unless overridden.
        actions: Per-cell action set overrides (action-grid family).

    Example:
        >>> spec = GridSpec.action_grid(4, 4)
        >>> sorted(spec.terminals)
        [(0, 0), (3, 3)]
    """

    num_rows: int
    num_cols: int
    terminals: FrozenSet[Coord] = frozenset()
    rewards: Mapping[Coord, float] = field(default_factory=dict)
    terminal_values: Mapping[Coord, float] = field(default_factory=dict)
    default_actions: Tuple[ActionSpec, ...] = field(default_factory=uniform_actions)
    actions: Mapping[Coord, Tuple[ActionSpec, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "num_rows", _grid_dimension(self.num_rows))
        object.__setattr__(self, "num_cols", _grid_dimension(self.num_cols))
        object.__setattr__(self, "terminals", frozenset(tuple(c) for c in self.terminals))
        object.__setattr__(self, "default_actions", tuple(self.default_actions))
        object.__setattr__(
            self, "rewards", MappingProxyType({tuple(c): r for c, r in self.rewards.items()})
        )
        object.__setattr__(
            self,
            "terminal_values",
            MappingProxyType({tuple(c): v for c, v in self.terminal_values.items()}),
        )
        object.__setattr__(
            self,
            "actions",
            MappingProxyType({tuple(c): tuple(a) for c, a in self.actions.items()}),
        )
        self._validate()

    def __hash__(self) -> int:
        return hash((
            self.num_rows,
            self.num_cols,
            self.terminals,
            frozenset(self.rewards.items()),
            frozenset(self.terminal_values.items()),
            self.default_actions,
            frozenset(self.actions.items()),
        ))

    @classmethod
    def reward_grid(
        cls,
        num_rows: int,
        num_cols: int,
        source: Coord = (0, 0),
        source_reward: float = 1.0,
        sink: Optional[Coord] = None,
    ) -> "GridSpec":
        """
        Build a reward-grid spec with one reward source and an optional sink.

        The source is terminal and holds ``source_reward`` as both reward and
        value. The sink, if given, is a terminal with reward and value 0.0.
        All other cells have reward 0.0.

        Example:
            >>> spec = GridSpec.reward_grid(4, 8, sink=(3, 7))
            >>> spec.rewards[(0, 0)]
            1.0
        """
        terminals = {tuple(source)}
        rewards = {tuple(source): float(source_reward)}
        if sink is not None:
            terminals.add(tuple(sink))
            rewards[tuple(sink)] = 0.0
        return cls(num_rows, num_cols, terminals=frozenset(terminals), rewards=rewards)

    @classmethod
    def action_grid(
        cls,
        num_rows: int,
        num_cols: int,
        terminals: Optional[Iterable[Coord]] = None,
        probability: float = 0.25,
        step_reward: float = -1.0,
        actions: Optional[Mapping[Coord, Sequence[ActionSpec]]] = None,
    ) -> "GridSpec":
        """
        Build an action-grid spec: a random walk with a step cost.

        Args:
            num_rows: Number of rows.
            num_cols: Number of columns.
            terminals: Terminal cells. Defaults to the top-left and
                bottom-right corners.
            probability: Probability of each of the four actions.
            step_reward: Reward of every action.
            actions: Optional per-cell action set overrides.
        """
        if terminals is None:
            terminals = [(0, 0), (num_rows - 1, num_cols - 1)]
        return cls(
            num_rows,
            num_cols,
            terminals=frozenset(tuple(t) for t in terminals),
            default_actions=uniform_actions(probability, step_reward),
            actions={tuple(c): tuple(a) for c, a in (actions or {}).items()},
        )

    @classmethod
    def default(cls, num_rows: int, num_cols: int, family: Family) -> "GridSpec":
        """The classic layout for a family."""
        if Family(family) is Family.ACTION_GRID:
            return cls.action_grid(num_rows, num_cols)
        return cls.reward_grid(num_rows, num_cols)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.num_rows and 0 <= col < self.num_cols

    def actions_for(self, cell: Coord) -> Tuple[ActionSpec, ...]:
        """Action set of a cell in the action-grid family."""
        if cell in self.terminals:
            return ()
        return self.actions.get(cell, self.default_actions)

    def _validate(self) -> None:
        """
        Validate that the spec describes a usable grid.

        Raises:
            ValueError: If validation fails.
        """
        if self.num_rows <= 0 or self.num_cols <= 0:
            raise ValueError(
                f"Grid dimensions must be positive, got {self.num_rows}x{self.num_cols}"
            )

        for label, cells in (
            ("Terminal", self.terminals),
            ("Reward", self.rewards.keys()),
            ("Terminal value", self.terminal_values.keys()),
            ("Action override", self.actions.keys()),
        ):
            for row, col in cells:
                if not self.in_bounds(row, col):
                    raise ValueError(
                        f"{label} cell ({row}, {col}) lies outside the "
                        f"{self.num_rows}x{self.num_cols} grid"
                    )

        for cell in self.terminal_values:
            if cell not in self.terminals:
                raise ValueError(f"Terminal value given for non-terminal cell {cell}")

        self._validate_action_set("default", self.default_actions)
        for cell, action_set in self.actions.items():
            if cell in self.terminals:
                raise ValueError(f"Action override given for terminal cell {cell}")
            self._validate_action_set(str(cell), action_set)

    @staticmethod
    def _validate_action_set(label: str, action_set: Tuple[ActionSpec, ...]) -> None:
        if len(action_set) == 0:
            raise ValueError(
                f"Action set for non-terminal cell {label} is empty. "
                "Declare the cell as terminal instead."
            )
        seen = set()
        for spec in action_set:
            if not isinstance(spec, ActionSpec):
                raise ValueError(f"Action set for cell {label} must contain ActionSpec items")
            if spec.action in seen:
                raise ValueError(
                    f"Action {spec.action.name} appears twice in action set for cell {label}"
                )
            seen.add(spec.action)
