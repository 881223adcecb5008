"""
Bots module - AI opponents for Ringo.

Provides:
- BotPolicy: Interface for bot decision-making
- ReflexivePolicy / HeuristicPolicy / StrategicPolicy: Tiers 1-3
- SearchPolicy: Tier 4, determinized search over a BeliefState
- HeuristicEvaluator: Scores plays, captures and special cards
- Personality: Configurable play styles
"""

from .policy import BotPolicy, BotDecision, Difficulty, PhaseContext, context_for, create_policy, decide
from .evaluator import HeuristicEvaluator, EvaluationWeights
from .personality import Personality, PRO, MASTER, ROLLOUT
from .heuristic import ReflexivePolicy, HeuristicPolicy, StrategicPolicy
from .belief import BeliefState
from .search import SearchPolicy, SearchConfig, SearchCancelled

__all__ = [
    "BotPolicy",
    "BotDecision",
    "Difficulty",
    "PhaseContext",
    "context_for",
    "create_policy",
    "decide",
    "HeuristicEvaluator",
    "EvaluationWeights",
    "Personality",
    "PRO",
    "MASTER",
    "ROLLOUT",
    "ReflexivePolicy",
    "HeuristicPolicy",
    "StrategicPolicy",
    "BeliefState",
    "SearchPolicy",
    "SearchConfig",
    "SearchCancelled",
]
