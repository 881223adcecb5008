"""
Bot Personalities - Tuning for the heuristic tiers.

Personalities adjust:
- Evaluation weights (what the bot values)
- Danger thresholds (when it stops holding cards back)
- RINGO appetite
- Randomness (jitter on scores, for unpredictability)
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .evaluator import EvaluationWeights


@dataclass
class Personality:
    """A play style for one heuristic tier."""
    name: str
    description: str = ""

    # Evaluation weights
    weights: EvaluationWeights = field(default_factory=EvaluationWeights)

    # Opponent hand sizes that change behaviour
    danger_threshold: int = 4
    emergency_threshold: int = 2

    # Contested plays scoring below this are held back (draw instead)
    hold_threshold: float | None = None

    # RINGO
    ringo_accept: float = 1.0
    single_ringo_decline: float = 0.0

    # Captured split cards are always taken
    take_splits: bool = False

    # Relative score jitter, e.g. 0.05 = +/-5%
    jitter: float = 0.0


# ============================================================================
# Predefined Personalities
# ============================================================================

PRO = Personality(
    name="Pro",
    description="Simplifies its hand and beats cheaply once someone is close to winning",
    weights=EvaluationWeights(),
    hold_threshold=-6.0,
)


MASTER = Personality(
    name="Master",
    description="Plans around turns-to-empty, denies low opponents and saves big combos",
    weights=EvaluationWeights(
        lead_value=0.0,
        lead_turns=-5.0,
        contested_size=6.0,
        contested_value=0.0,
        tempo=5.0,
        ammo=-3.0,
        denial=3.0,
    ),
    single_ringo_decline=0.3,
    take_splits=True,
    jitter=0.05,
)


# Stand-in for every seat during search playouts; deterministic.
ROLLOUT = Personality(
    name="Rollout",
    description="Pro without holding back, used for playouts",
    weights=EvaluationWeights(),
)
