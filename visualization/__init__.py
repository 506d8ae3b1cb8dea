"""
Visualization tools for CosmicMind.

Static matplotlib views of the tapestry graph and the emotional matrix.
"""

from visualization.tapestry_viz import (
    plot_tapestry,
    plot_emotional_state,
    truth_colors
)

__all__ = [
    'plot_tapestry',
    'plot_emotional_state',
    'truth_colors',
]
