"""
Utility Module

Read-only rendering helpers for a GridWorld. Everything here goes through
the GridWorld accessors (value_at, policy_at, is_terminal) and never touches
engine state.

Key functions:
    - format_values: Value table as aligned text
    - format_policy: Policy as a grid of arrows
    - print_grid: Print values (and optionally the policy)
    - visualize_values: matplotlib heat map with value labels and arrows
"""

from __future__ import annotations

from typing import Optional, Tuple, TYPE_CHECKING

import numpy as np

from dpgrid.grid_spec import ACTION_DELTAS

if TYPE_CHECKING:
    from dpgrid.grid_world import GridWorld


def format_values(world: "GridWorld", precision: int = 2) -> str:
    """
    Format the value table as text, one grid row per line.

    Args:
        world: The GridWorld to render.
        precision: Number of decimals per value.

    Returns:
        Multi-line string with right-aligned values.

    Example:
        >>> world = GridWorld(2, 3)
        >>> print(format_values(world))
          1.00  0.00  0.00
          0.00  0.00  0.00
    """
    cells = [
        [f"{world.value_at(row, col):.{precision}f}" for col in range(world.num_cols)]
        for row in range(world.num_rows)
    ]
    width = max(len(c) for line in cells for c in line) + 2
    return "\n".join("".join(c.rjust(width) for c in line) for line in cells)


def format_policy(world: "GridWorld", terminal_mark: str = "■") -> str:
    """
    Format the policy as a grid of arrows.

    Terminal cells show ``terminal_mark``.
    """
    lines = []
    for row in range(world.num_rows):
        symbols = []
        for col in range(world.num_cols):
            action = world.policy_at(row, col)
            if world.is_terminal(row, col) or action is None:
                symbols.append(terminal_mark)
            else:
                symbols.append(action.arrow)
        lines.append(" ".join(symbols))
    return "\n".join(lines)


def print_grid(world: "GridWorld", precision: int = 2, show_policy: bool = False) -> None:
    """Print the value table, followed by the policy if requested."""
    print(f"Values after {world.sweeps} sweeps:")
    print("-" * 50)
    print(format_values(world, precision=precision))
    if show_policy:
        print("-" * 50)
        print("Policy:")
        print(format_policy(world))


def visualize_values(
    world: "GridWorld",
    ax=None,
    show_values: bool = True,
    show_policy: bool = True,
    title: Optional[str] = None,
    precision: int = 2,
    figsize: Tuple[float, float] = (10, 5),
):
    """
    Visualize the value table using matplotlib.

    Creates a heat map where:
        - Cell colour encodes the current value
        - Terminal cells are outlined in black
        - Optionally annotates each cell with its value
        - Optionally draws an arrow for each non-terminal policy

    Args:
        world: The GridWorld to render.
        ax: Matplotlib axes to plot on. If None, creates new figure.
        show_values: Whether to annotate values on cells.
        show_policy: Whether to draw policy arrows.
        title: Title for the plot.
        precision: Number of decimals for value labels.
        figsize: Figure size if creating new figure.

    Returns:
        Matplotlib axes object.

    Example:
        >>> import matplotlib.pyplot as plt
        >>> world = GridWorld(4, 8)
        >>> world.run()
        >>> ax = visualize_values(world, title="Converged values")
        >>> plt.show()
    """
    import matplotlib.pyplot as plt
    import matplotlib.patches as mpatches

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    values = np.array(
        [[world.value_at(row, col) for col in range(world.num_cols)]
         for row in range(world.num_rows)]
    )

    image = ax.imshow(values, cmap='viridis', origin='upper', aspect='equal')
    ax.figure.colorbar(image, ax=ax, fraction=0.046, pad=0.04)

    # Draw grid lines
    for x in range(world.num_cols + 1):
        ax.axvline(x - 0.5, color='gray', linewidth=0.5)
    for y in range(world.num_rows + 1):
        ax.axhline(y - 0.5, color='gray', linewidth=0.5)

    span = max(values.max() - values.min(), 1e-12)
    for row in range(world.num_rows):
        for col in range(world.num_cols):
            terminal = world.is_terminal(row, col)
            if terminal:
                ax.add_patch(mpatches.Rectangle(
                    (col - 0.5, row - 0.5), 1, 1,
                    fill=False, edgecolor='black', linewidth=2,
                ))

            # Light text on dark cells
            color = 'white' if (values[row, col] - values.min()) / span < 0.5 else 'black'

            if show_values:
                ax.text(
                    col, row + (0.2 if show_policy else 0.0),
                    f"{values[row, col]:.{precision}f}",
                    ha='center', va='center', fontsize=9, color=color,
                )

            action = world.policy_at(row, col)
            if show_policy and not terminal and action is not None:
                d_row, d_col = ACTION_DELTAS[action]
                ax.annotate(
                    '', xy=(col + 0.3 * d_col, row - 0.15 + 0.3 * d_row),
                    xytext=(col, row - 0.15),
                    arrowprops=dict(arrowstyle='->', color=color, lw=1.5),
                )

    ax.set_xlim(-0.5, world.num_cols - 0.5)
    ax.set_ylim(world.num_rows - 0.5, -0.5)
    ax.set_xticks(range(world.num_cols))
    ax.set_yticks(range(world.num_rows))
    ax.set_xlabel('Column')
    ax.set_ylabel('Row')

    if title is None:
        title = f"Values after {world.sweeps} sweeps"
    ax.set_title(title)

    return ax
