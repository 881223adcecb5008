"""
Search Bot - Tier 4 (Nightmare).

Determinized playouts under a time budget:
1. Sample a concrete world from the seat's belief state
2. Apply every candidate intent to that same world through the real reducer
3. Play forward a few turns with Tier-2 heuristics standing in for every seat
4. Score the outcome and average per candidate over all worlds

With a fixed seed and a budget that is not exhausted, decisions are
deterministic.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
import logging
import os
import random
import threading
import time

from ..engine_core.action import Action, CaptureChoice
from ..engine_core.hand import hand_cost
from ..engine_core.projection import GameView, project_state
from ..engine_core.reducer import Reducer
from ..engine_core.state import GameState, TurnPhase
from ..engine_core.validation import find_valid_plays, cheapest_play
from .belief import BeliefState
from .heuristic import HeuristicPolicy, StrategicPolicy, play_action, ringo_action
from .personality import MASTER, ROLLOUT
from .policy import BotPolicy, BotDecision, Difficulty, PhaseContext, context_for

logger = logging.getLogger(__name__)


TIE_TOLERANCE = 1e-9


def _default_budget() -> float:
    return int(os.getenv("RINGO_SEARCH_BUDGET_MS", "800")) / 1000.0


@dataclass
class SearchConfig:
    """Budget and scoring for the search."""
    time_budget_s: float = field(default_factory=_default_budget)
    max_determinizations: int = 24
    rollouts_per_world: int = 1
    horizon: int = 6  # turns
    candidate_limit: int = 8

    # Playout scoring
    win_score: float = 100.0
    loss_score: float = 100.0
    shed_score: float = 4.0
    danger_score: float = 6.0
    danger_threshold: int = 4


class SearchCancelled(Exception):
    """The game this search belongs to has ended."""


class SearchPolicy(BotPolicy):
    """
    Tier 4: belief-state search.

    Owns one BeliefState for its seat. The belief is rebuilt when a new
    game id is observed and dropped by forget().
    """

    difficulty = Difficulty.NIGHTMARE

    def __init__(
        self,
        seat_id: str | None = None,
        seed: int | None = None,
        config: SearchConfig | None = None,
    ):
        self.seat_id = seat_id
        self.seed = seed
        self.config = config or SearchConfig()
        self.belief: BeliefState | None = BeliefState(seat_id) if seat_id else None
        # candidate ordering must not depend on jitter
        self.guide = StrategicPolicy(personality=replace(MASTER, jitter=0.0, single_ringo_decline=0.0))
        self.rollout_policy = HeuristicPolicy(personality=ROLLOUT)
        self.reducer = Reducer(verify_invariants=False)
        self._lock = threading.Lock()

    def _belief_for(self, seat_id: str) -> BeliefState:
        if self.belief is None or self.belief.seat_id != seat_id:
            self.seat_id = seat_id
            self.belief = BeliefState(seat_id)
        return self.belief

    def observe(self, view: GameView) -> None:
        with self._lock:
            self._belief_for(view.viewer_id).observe(view)

    def forget(self) -> None:
        """Drop everything learned about the current game."""
        with self._lock:
            self.belief = None

    # =========================================================================
    # Decision
    # =========================================================================

    def decide(
        self,
        view: GameView,
        seat_id: str,
        context: PhaseContext,
        cancel_event: threading.Event | None = None,
    ) -> BotDecision:
        with self._lock:
            belief = self._belief_for(seat_id)
            if belief.last_view is None or belief.last_view.version != view.version:
                belief.observe(view)
            belief = belief.snapshot()

        if context == PhaseContext.TURN and self._emergency_beat(view):
            play = cheapest_play(find_valid_plays(view.hand, view.current_combo))
            return BotDecision(action=play_action(seat_id, play), explanation="emergency: cheapest beat")

        candidates = self.candidates(view, seat_id, context)
        if len(candidates) == 1:
            return BotDecision(action=candidates[0], explanation="only option", evaluated_actions=1)

        means, worlds = self.evaluate(view, seat_id, candidates, belief, cancel_event)

        best = 0
        for i in range(1, len(candidates)):
            if means[i] > means[best] + TIE_TOLERANCE:
                best = i

        ranking = [
            {"action": action.describe(), "value": value}
            for action, value in zip(candidates, means)
        ]
        logger.debug(
            "Search for %s at v%d: %d candidates over %d worlds, best %s (%.2f)",
            seat_id, view.version, len(candidates), worlds, candidates[best].describe(), means[best],
        )
        return BotDecision(
            action=candidates[best],
            explanation=f"best mean outcome over {worlds} sampled worlds",
            confidence=min(1.0, worlds / self.config.max_determinizations),
            evaluated_actions=len(candidates),
            best_score=means[best],
            evaluation_details={"ranking": ranking, "worlds": worlds},
        )

    def _emergency_beat(self, view: GameView) -> bool:
        if view.current_combo is None:
            return False
        if view.min_opponent_count() > self.guide.personality.emergency_threshold:
            return False
        return bool(find_valid_plays(view.hand, view.current_combo))

    def candidates(self, view: GameView, seat_id: str, context: PhaseContext) -> list[Action]:
        """Root intents in Tier-3 preference order."""
        limit = self.config.candidate_limit
        guide = self.guide

        if context == PhaseContext.TURN:
            plays = find_valid_plays(view.hand, view.current_combo)
            ranked = guide.rank_plays(view, plays) if plays else []
            actions = [play_action(seat_id, e.play) for e in ranked[:limit]]
            actions.append(Action.draw(seat_id))
            return actions

        if context == PhaseContext.RINGO_OFFER:
            position = guide.insert_position(view.hand, view.drawn_card)
            actions = [Action.insert_drawn(seat_id, position)]
            if view.ringo_opportunity is not None:
                actions.insert(0, ringo_action(view, seat_id))
            return actions

        if context == PhaseContext.CAPTURE:
            cards = view.pending_capture.cards
            position = guide.insert_position(view.hand, cards[0])
            preferred = guide.decide(view, seat_id, context).action
            options = [
                Action.capture(seat_id, CaptureChoice.DISCARD_ALL),
                Action.capture(seat_id, CaptureChoice.INSERT_ALL, position=position),
            ]
            return [preferred] + [a for a in options if a != preferred]

        if context == PhaseContext.INSERT_PLACEMENT:
            card = view.drawn_card
            if card.is_special:
                preferred = guide.decide(view, seat_id, context).action
                options = [Action.discard_drawn(seat_id)]
                if card.special.needs_target:
                    options += [Action.use_special(seat_id, s.player_id) for s in view.opponents()]
                else:
                    options.append(Action.use_special(seat_id))
                return [preferred] + [a for a in options if a != preferred]

            cards = tuple(view.hand)
            positions = sorted(
                range(len(cards) + 1),
                key=lambda pos: hand_cost(cards[:pos] + (card,) + cards[pos:]),
            )
            actions = [Action.insert_drawn(seat_id, pos) for pos in positions[:limit]]
            actions.append(Action.discard_drawn(seat_id))
            return actions

        raise ValueError(f"Unknown context {context}")

    # =========================================================================
    # Playouts
    # =========================================================================

    def evaluate(
        self,
        view: GameView,
        seat_id: str,
        candidates: list[Action],
        belief: BeliefState,
        cancel_event: threading.Event | None = None,
    ) -> tuple[list[float], int]:
        """Mean playout score per candidate, and the number of worlds sampled."""
        cfg = self.config
        rng = random.Random(f"{self.seed}:{view.version}")
        deadline = time.monotonic() + cfg.time_budget_s
        totals = [0.0] * len(candidates)
        samples = 0
        worlds = 0

        while worlds < cfg.max_determinizations:
            if worlds and time.monotonic() > deadline:
                break
            world = belief.sample_world(view, rng)
            for r in range(cfg.rollouts_per_world):
                if r:
                    pile = list(world.draw_pile)
                    rng.shuffle(pile)
                    world = world._copy_with(draw_pile=tuple(pile))
                for i, action in enumerate(candidates):
                    if cancel_event is not None and cancel_event.is_set():
                        raise SearchCancelled(f"Search for {seat_id} cancelled")
                    totals[i] += self.playout(world, action, seat_id)
                samples += 1
            worlds += 1

        return [total / samples for total in totals], worlds

    def playout(self, world: GameState, action: Action, seat_id: str) -> float:
        """Apply action to world, play forward, and score the result for seat_id."""
        result = self.reducer.apply(world, action)
        if not result.success:
            logger.debug("Candidate %s rejected in a sampled world: %s", action.describe(), result.error)
            return -self.config.loss_score

        state = result.new_state
        turns = 0
        steps = 0
        max_steps = self.config.horizon * 8
        while not state.is_over and turns < self.config.horizon and steps < max_steps:
            actor = self._actor(state)
            view = project_state(state, actor)
            context = context_for(view, actor)
            if context is None:
                break
            decision = self.rollout_policy.decide(view, actor, context)
            step = self.reducer.apply(state, decision.action)
            if not step.success:
                break
            if step.new_state.current_player_index != state.current_player_index:
                turns += 1
            state = step.new_state
            steps += 1

        return self.score(world, state, seat_id)

    def _actor(self, state: GameState) -> str:
        if state.turn_phase == TurnPhase.WAITING_FOR_CAPTURE_DECISION:
            return state.pending_capture.owner_id
        return state.current_player.player_id

    def score(self, start: GameState, end: GameState, seat_id: str) -> float:
        """100 per win, -100 per opponent win, +4 per card shed, -6 per opponent newly in danger."""
        cfg = self.config
        value = 0.0
        if end.winner == seat_id:
            value += cfg.win_score
        elif end.winner is not None:
            value -= cfg.loss_score

        value += cfg.shed_score * (len(start.get_player(seat_id).hand) - len(end.get_player(seat_id).hand))

        for before in start.opponents_of(seat_id):
            after = end.get_player(before.player_id)
            if len(before.hand) > cfg.danger_threshold >= len(after.hand):
                value -= cfg.danger_score
        return value
