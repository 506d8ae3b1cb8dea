"""Goal dynamics for the cognition cycle."""

from cosmicmind.dynamics.volition import deliberate, evaluate_goals, metamorphose, select_goal

__all__ = [
    "evaluate_goals",
    "select_goal",
    "deliberate",
    "metamorphose",
]
