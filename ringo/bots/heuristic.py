"""
Heuristic bots - Tiers 1 to 3.

- ReflexivePolicy (Rookie): fixed rules with a little randomness
- HeuristicPolicy (Pro): weighted play scoring and danger escalation
- StrategicPolicy (Master): adds tempo, denial, ammo saving and jitter

All three are pure with respect to the game: they read a GameView and
return an intent. Only their own RNG carries state between calls.
"""

from __future__ import annotations
import random

from ..engine_core.action import Action, CaptureChoice
from ..engine_core.hand import best_insert_position, estimate_turns_to_empty
from ..engine_core.projection import GameView
from ..engine_core.validation import ValidatedPlay, find_valid_plays, cheapest_play, largest_play
from .evaluator import HeuristicEvaluator, PlayEvaluation
from .personality import Personality, PRO, MASTER
from .policy import BotPolicy, BotDecision, Difficulty, PhaseContext


def play_action(seat_id: str, play: ValidatedPlay) -> Action:
    return Action.play(seat_id, play.indices, play.resolutions)


def ringo_action(view: GameView, seat_id: str) -> Action:
    opportunity = view.ringo_opportunity
    return Action.ringo(
        seat_id,
        opportunity.insert_position,
        opportunity.combo_indices,
        opportunity.resolutions,
    )


class ReflexivePolicy(BotPolicy):
    """
    Tier 1: simple reflexes.

    Leads big, beats small, keeps only captured split cards and takes
    RINGO about half the time.
    """

    difficulty = Difficulty.EASY
    ringo_accept = 0.5

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def decide(self, view: GameView, seat_id: str, context: PhaseContext) -> BotDecision:
        if context == PhaseContext.TURN:
            plays = find_valid_plays(view.hand, view.current_combo)
            if not plays:
                return BotDecision(action=Action.draw(seat_id), explanation="nothing beats the table")
            if view.current_combo is None:
                play = largest_play(plays)
                reason = "lead with the largest run"
            else:
                # any beat is taken, so an opponent close to winning is always answered
                play = cheapest_play(plays)
                reason = "smallest beat"
            return BotDecision(
                action=play_action(seat_id, play),
                explanation=reason,
                evaluated_actions=len(plays),
            )

        if context == PhaseContext.RINGO_OFFER:
            if view.ringo_opportunity and self.rng.random() < self.ringo_accept:
                return BotDecision(action=ringo_action(view, seat_id), explanation="RINGO")
            return self._insert_randomly(view, seat_id)

        if context == PhaseContext.INSERT_PLACEMENT:
            if view.drawn_card.is_special:
                return BotDecision(action=Action.discard_drawn(seat_id), explanation="ignore special")
            return self._insert_randomly(view, seat_id)

        if context == PhaseContext.CAPTURE:
            for card in view.pending_capture.cards:
                if card.is_split:
                    position = best_insert_position(view.hand, card, use_messiness=False)
                    return BotDecision(
                        action=Action.capture(
                            seat_id, CaptureChoice.INSERT_ONE, card_id=card.card_id, position=position,
                        ),
                        explanation="keep split card",
                    )
            return BotDecision(
                action=Action.capture(seat_id, CaptureChoice.DISCARD_ALL),
                explanation="discard captured cards",
            )

        raise ValueError(f"Unknown context {context}")

    def _insert_randomly(self, view: GameView, seat_id: str) -> BotDecision:
        position = self.rng.randrange(len(view.hand) + 1)
        return BotDecision(action=Action.insert_drawn(seat_id, position), explanation="random insert")


class HeuristicPolicy(BotPolicy):
    """
    Tier 2: weighted scoring.

    Scores plays by messiness reduction, unblocking, size and value;
    beats cheaply once an opponent is in danger.
    """

    difficulty = Difficulty.MEDIUM

    def __init__(self, personality: Personality | None = None, seed: int | None = None):
        self.personality = personality or PRO
        self.evaluator = HeuristicEvaluator(self.personality.weights)
        self.rng = random.Random(seed)

    def decide(self, view: GameView, seat_id: str, context: PhaseContext) -> BotDecision:
        if context == PhaseContext.TURN:
            return self._decide_turn(view, seat_id)
        if context == PhaseContext.RINGO_OFFER:
            return self._decide_ringo(view, seat_id)
        if context == PhaseContext.INSERT_PLACEMENT:
            return self._decide_insert(view, seat_id)
        if context == PhaseContext.CAPTURE:
            return self._decide_capture(view, seat_id)
        raise ValueError(f"Unknown context {context}")

    # =========================================================================
    # Turn
    # =========================================================================

    def in_danger(self, view: GameView) -> bool:
        return view.min_opponent_count() <= self.personality.danger_threshold

    def in_emergency(self, view: GameView) -> bool:
        return view.min_opponent_count() <= self.personality.emergency_threshold

    def rank_plays(self, view: GameView, plays: list[ValidatedPlay]) -> list[PlayEvaluation]:
        """Plays best first, with this tier's jitter applied."""
        next_seat = view.next_seat()
        ranked = self.evaluator.rank_plays(
            view.hand,
            plays,
            view.current_combo,
            opponent_in_danger=self.in_danger(view),
            next_player_low=next_seat.hand_count <= self.personality.emergency_threshold,
        )
        jitter = self.personality.jitter
        if jitter:
            for evaluation in ranked:
                evaluation.score += abs(evaluation.score) * self.rng.uniform(-jitter, jitter)
            ranked.sort(key=lambda e: -e.score)
        return ranked

    def _decide_turn(self, view: GameView, seat_id: str) -> BotDecision:
        plays = find_valid_plays(view.hand, view.current_combo)
        if not plays:
            return BotDecision(action=Action.draw(seat_id), explanation="nothing beats the table")

        if self.in_emergency(view):
            if view.current_combo is None:
                play = largest_play(plays)
                reason = "emergency: lead something hard to beat"
            else:
                play = cheapest_play(plays)
                reason = "emergency: cheapest beat"
            return BotDecision(action=play_action(seat_id, play), explanation=reason, evaluated_actions=len(plays))

        if view.current_combo is not None and self.beats_cheaply_in_danger and self.in_danger(view):
            play = cheapest_play(plays)
            return BotDecision(
                action=play_action(seat_id, play),
                explanation="danger: cheapest beat",
                evaluated_actions=len(plays),
            )

        ranked = self.rank_plays(view, plays)
        best = ranked[0]
        hold = self.personality.hold_threshold
        if view.current_combo is not None and hold is not None and best.score < hold:
            return BotDecision(
                action=Action.draw(seat_id),
                explanation="hold back: best beat costs too much",
                evaluated_actions=len(plays),
                best_score=best.score,
            )
        return BotDecision(
            action=play_action(seat_id, best.play),
            explanation="best scored play",
            evaluated_actions=len(plays),
            best_score=best.score,
        )

    @property
    def beats_cheaply_in_danger(self) -> bool:
        return True

    # =========================================================================
    # Drawn card
    # =========================================================================

    def _decide_ringo(self, view: GameView, seat_id: str) -> BotDecision:
        opportunity = view.ringo_opportunity
        if opportunity is None:
            return self._decide_insert(view, seat_id)
        p = self.personality
        if (
            opportunity.size == 1
            and p.single_ringo_decline
            and not self.in_emergency(view)
            and self.rng.random() < p.single_ringo_decline
        ):
            return self._decide_insert(view, seat_id, reason="declined single-card RINGO")
        return BotDecision(action=ringo_action(view, seat_id), explanation="RINGO")

    def _decide_insert(self, view: GameView, seat_id: str, reason: str = "best insertion") -> BotDecision:
        card = view.drawn_card
        if card.is_special:
            use, target = self.evaluator.choose_special_target(view, card.special)
            if use:
                return BotDecision(
                    action=Action.use_special(seat_id, target),
                    explanation=f"use {card.special.value}",
                )
            return BotDecision(action=Action.discard_drawn(seat_id), explanation="special not useful")
        position = self.insert_position(view.hand, card)
        return BotDecision(action=Action.insert_drawn(seat_id, position), explanation=reason)

    def insert_position(self, hand, card) -> int:
        return best_insert_position(hand, card, use_messiness=True)

    # =========================================================================
    # Capture
    # =========================================================================

    def _decide_capture(self, view: GameView, seat_id: str) -> BotDecision:
        cards = view.pending_capture.cards
        take = (
            (self.personality.take_splits and any(c.is_split for c in cards))
            or self.evaluator.should_capture(view.hand, cards)
        )
        if take:
            position = self.insert_position(view.hand, cards[0])
            return BotDecision(
                action=Action.capture(seat_id, CaptureChoice.INSERT_ALL, position=position),
                explanation="captured cards strengthen the hand",
            )
        return BotDecision(
            action=Action.capture(seat_id, CaptureChoice.DISCARD_ALL),
            explanation="captured cards not worth a bigger hand",
        )


class StrategicPolicy(HeuristicPolicy):
    """
    Tier 3: Tier 2 plus tempo, denial, ammo saving and score jitter.

    Places cards to minimise the estimated turns needed to empty the hand.
    """

    difficulty = Difficulty.HARD

    def __init__(self, personality: Personality | None = None, seed: int | None = None):
        super().__init__(personality=personality or MASTER, seed=seed)

    @property
    def beats_cheaply_in_danger(self) -> bool:
        return False

    def insert_position(self, hand, card) -> int:
        cards = tuple(hand)
        best_pos, best_turns = 0, float("inf")
        for pos in range(len(cards) + 1):
            turns = estimate_turns_to_empty(cards[:pos] + (card,) + cards[pos:])
            if turns < best_turns:
                best_pos, best_turns = pos, turns
        return best_pos
