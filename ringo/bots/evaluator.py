"""
Heuristic Evaluator - Scores plays, captures and special cards.

The evaluator assigns a numeric score to candidate plays based on:
- Hand shape features (messiness reduction, groups unblocked, turns to empty)
- Play features (size, resolved value)
- Table features (opponents in danger, next player low on cards)

Weights can be adjusted to create the different tiers.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence, TYPE_CHECKING

from ..engine_core.cards import Card, SpecialEffect, candidate_values
from ..engine_core.hand import adjacent_groups, messiness, estimate_turns_to_empty

if TYPE_CHECKING:
    from ..engine_core.projection import GameView
    from ..engine_core.state import Combo
    from ..engine_core.validation import ValidatedPlay


@dataclass
class EvaluationWeights:
    """
    Weights for the heuristic evaluator.

    Higher values = more importance.
    """
    # Leading on an empty table
    lead_messiness: float = 3.0
    lead_size: float = 2.0
    lead_value: float = 1.0
    lead_turns: float = 0.0  # Per estimated turn left after the play

    # Beating a combo
    contested_messiness: float = 4.0
    contested_size: float = -2.0
    contested_value: float = 1.0
    unblock: float = 3.0  # Per group merged by removing the run

    # Table awareness
    tempo: float = 0.0  # Flat bonus for beating while an opponent is in danger
    ammo: float = 0.0  # Per card, for runs of 3+ when a smaller beat exists
    denial: float = 0.0  # Per card, when the next player is nearly out

    # Capture
    capture_extends_group: float = 3.0
    capture_high_card: float = 2.0
    capture_cost_per_card: float = 2.0


@dataclass
class PlayEvaluation:
    play: ValidatedPlay
    score: float
    messiness_reduction: float
    unblocked: int


class HeuristicEvaluator:
    """
    Evaluates plays for the heuristic tiers.

    Stateless apart from its weights; safe to share between games.
    """

    def __init__(self, weights: EvaluationWeights | None = None):
        self.weights = weights or EvaluationWeights()

    def evaluate_play(
        self,
        hand: Sequence[Card],
        play: ValidatedPlay,
        combo: Combo | None,
        smaller_beat_exists: bool = False,
        opponent_in_danger: bool = False,
        next_player_low: bool = False,
    ) -> PlayEvaluation:
        w = self.weights
        cards = tuple(hand)
        after = cards[:play.indices[0]] + cards[play.indices[-1] + 1:]
        mess_red = messiness(cards) - messiness(after)
        unblocked = max(0, len(adjacent_groups(cards)) - 1 - len(adjacent_groups(after)))

        if combo is None:
            score = (
                mess_red * w.lead_messiness
                + play.size * w.lead_size
                + play.value * w.lead_value
                + estimate_turns_to_empty(after) * w.lead_turns
            )
        else:
            score = (
                mess_red * w.contested_messiness
                + play.size * w.contested_size
                + play.value * w.contested_value
                + unblocked * w.unblock
            )
            if opponent_in_danger:
                score += w.tempo
            if play.size >= 3 and smaller_beat_exists:
                score += w.ammo * play.size
            if next_player_low:
                score += w.denial * play.size

        return PlayEvaluation(play=play, score=score, messiness_reduction=mess_red, unblocked=unblocked)

    def rank_plays(
        self,
        hand: Sequence[Card],
        plays: Sequence[ValidatedPlay],
        combo: Combo | None,
        opponent_in_danger: bool = False,
        next_player_low: bool = False,
    ) -> list[PlayEvaluation]:
        """Evaluate every play, best first (stable for equal scores)."""
        min_size = min((p.size for p in plays), default=0)
        evaluations = [
            self.evaluate_play(
                hand,
                play,
                combo,
                smaller_beat_exists=min_size < play.size,
                opponent_in_danger=opponent_in_danger,
                next_player_low=next_player_low,
            )
            for play in plays
        ]
        return sorted(evaluations, key=lambda e: -e.score)

    # =========================================================================
    # Captures
    # =========================================================================

    def completes_group(self, hand: Sequence[Card], captured: Sequence[Card], size: int = 3) -> bool:
        """True if some value would be held size or more times after taking."""
        for value in {v for card in captured for v in candidate_values(card)}:
            held = sum(1 for card in hand if value in candidate_values(card))
            taken = sum(1 for card in captured if value in candidate_values(card))
            if held + taken >= size:
                return True
        return False

    def capture_take_score(self, hand: Sequence[Card], captured: Sequence[Card]) -> tuple[float, float]:
        """(value of taking the cards, cost of the larger hand)."""
        w = self.weights
        score = 0.0
        for card in captured:
            values = candidate_values(card)
            if any(values & candidate_values(h) for h in hand):
                score += w.capture_extends_group
            if len(hand) <= 5 and values and max(values) >= 7:
                score += w.capture_high_card
        return score, len(captured) * w.capture_cost_per_card

    def should_capture(self, hand: Sequence[Card], captured: Sequence[Card]) -> bool:
        if self.completes_group(hand, captured):
            return True
        score, penalty = self.capture_take_score(hand, captured)
        return score > penalty

    # =========================================================================
    # Special cards
    # =========================================================================

    def choose_special_target(self, view: GameView, effect: SpecialEffect) -> tuple[bool, str | None]:
        """
        Decide whether a special card is worth using.

        Returns (use, target_id).
        """
        hand = view.hand
        opponents = view.opponents()
        if effect == SpecialEffect.SKIP_NEXT:
            return True, None
        if effect == SpecialEffect.GIVE_RANDOM and opponents:
            target = max(opponents, key=lambda s: s.hand_count)
            return True, target.player_id
        if effect == SpecialEffect.SWAP_HAND and opponents:
            target = min(opponents, key=lambda s: s.hand_count)
            if target.hand_count + 2 <= len(hand):
                return True, target.player_id
            return False, None
        if effect == SpecialEffect.DISCARD_DRAW:
            return len(hand) > 0 and messiness(hand.cards) > len(hand) / 2, None
        if effect == SpecialEffect.PEEK_DRAW:
            return True, None
        if effect == SpecialEffect.PEEK_HAND and opponents:
            target = min(opponents, key=lambda s: s.hand_count)
            return True, target.player_id
        # drawing or stealing only grows the hand
        return False, None
