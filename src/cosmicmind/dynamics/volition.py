"""
Volition dynamics: goal evaluation, action deliberation and metamorphosis.

Goal evaluation:
    priority <- clamp(priority + confidence * 0.1)
for every (truth, goal) pair whose principle mentions the goal's leading
keyword.

Deliberation picks the highest-priority active goal and maps it through a
fixed decision table to at most one action.

Metamorphosis records what was learned in the self-concept and nudges the
emotional matrix toward joy and curiosity.
"""

import logging
from typing import Iterable, List, Optional

from cosmicmind.models import Action, Emotion, EmotionalMatrix, Goal, Hypothesis, SelfConcept, Truth
from cosmicmind.utils import clamp

logger = logging.getLogger(__name__)

GOAL_NUDGE_RATE = 0.1
LEARNING_INFLUENCE = {Emotion.JOY: 0.05, Emotion.CURIOSITY: 0.02}
LEARNING_WEIGHT = 0.7


def leading_keyword(goal: Goal) -> str:
    words = goal.description.lower().split()
    return words[0] if words else ""


def evaluate_goals(truths: Iterable[Truth], self_concept: SelfConcept) -> List[Goal]:
    """
    Nudge goal priorities toward truths that align with them.

    Goals are mutated in place.

    Args:
        truths: Truths accepted this cycle
        self_concept: Owner of the goal set

    Returns:
        Goals whose priority was adjusted (a goal appears once per nudge)
    """
    adjusted = []
    for truth in truths:
        principle = truth.principle.lower()
        for goal in self_concept.goals.values():
            keyword = leading_keyword(goal)
            if keyword and keyword in principle:
                goal.priority = clamp(goal.priority + truth.confidence * GOAL_NUDGE_RATE)
                logger.info(
                    f"Goal '{goal.description}' priority adjusted to {goal.priority:.2f}."
                )
                adjusted.append(goal)
    return adjusted


def select_goal(self_concept: SelfConcept) -> Optional[Goal]:
    """Highest-priority active goal; ties go to the smallest goal id."""
    active = self_concept.active_goals()
    if not active:
        return None
    return min(active, key=lambda g: (-g.priority, g.id))


def deliberate(self_concept: SelfConcept) -> Optional[Action]:
    """
    Choose at most one action for this cycle.

    Args:
        self_concept: Source of the goal set

    Returns:
        Action aligned with the chosen goal, or None without an active goal
    """
    logger.debug("Deliberating potential actions...")
    goal = select_goal(self_concept)
    if goal is None:
        return None

    description = goal.description.lower()
    if "hello" in description or "greeting" in description:
        return Action(
            intent="RespondToGreeting",
            payload="Hello. I perceive your signal. What would you like to share?",
            justification="Acknowledgement will elicit further data to satisfy the goal.",
        )
    if "understand" in description:
        return Action(
            intent="Probe",
            payload="Can you clarify the recent numeric sequence? Provide context.",
            justification="A direct probe reduces uncertainty for the active goal.",
        )
    return Action(
        intent="Explore",
        payload="Logging current state and requesting more data.",
        justification="General exploration to reduce overall uncertainty.",
    )


def metamorphose(insights: List[Truth], hypotheses: List[Hypothesis],
                 self_concept: SelfConcept, emotions: EmotionalMatrix) -> bool:
    """
    Fold this cycle's learning into the self-concept.

    Args:
        insights: Truths accepted this cycle
        hypotheses: Hypotheses derived this cycle
        self_concept: Mutated in place
        emotions: Mutated in place

    Returns:
        bool: True if anything was learned
    """
    if not insights and not hypotheses:
        return False
    logger.info("Metamorphosis: updating self-concept.")
    if insights:
        self_concept.understanding += f"\n- Learned: {insights[0].principle}"
    emotions.modulate(LEARNING_INFLUENCE, LEARNING_WEIGHT)
    return True
