"""
Game State - The authoritative state of one Ringo round.

Design principles:
- Immutable-friendly: all mutations return new state
- Pure: every random choice is derived from random_seed and action_count,
  so applying the same intent to the same state always yields the same result
- Checked: check_invariants() verifies that every card of the round is in
  exactly one place
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
import random
import uuid

from .cards import Card, build_deck, full_card_set
from .errors import InvariantViolation
from .hand import Hand
from .validation import RingoOpportunity


MIN_PLAYERS = 2
MAX_PLAYERS = 5


class GameStatus(Enum):
    LOBBY = "lobby"
    PLAYING = "playing"
    GAME_OVER = "game_over"


class TurnPhase(Enum):
    """Phases of the per-turn protocol."""
    WAITING_FOR_PLAY_OR_DRAW = "waiting_for_play_or_draw"
    PROCESSING_DRAW = "processing_draw"
    RINGO_CHECK = "ringo_check"
    WAITING_FOR_CAPTURE_DECISION = "waiting_for_capture_decision"
    GAME_OVER = "game_over"


DRAWN_CARD_PHASES = frozenset({TurnPhase.PROCESSING_DRAW, TurnPhase.RINGO_CHECK})


@dataclass(frozen=True)
class RoundSettings:
    """Round configuration, fixed when the round is created."""
    hand_size: int | None = None
    special_cards: bool = False
    turn_timer: float | None = None

    def resolved_hand_size(self, num_players: int) -> int:
        if self.hand_size:
            return self.hand_size
        return 10 if num_players <= 3 else 8

    def to_dict(self) -> dict:
        return {
            "hand_size": self.hand_size,
            "special_cards": self.special_cards,
            "turn_timer": self.turn_timer,
        }


@dataclass(frozen=True)
class Combo:
    """A run of same-value cards on the table, owned by whoever played it."""
    cards: tuple[Card, ...]
    value: int
    owner_id: str
    resolutions: dict[int, int] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.cards)

    def to_dict(self) -> dict:
        return {
            "cards": [c.to_dict() for c in self.cards],
            "value": self.value,
            "size": self.size,
            "owner_id": self.owner_id,
            "split_resolutions": dict(self.resolutions),
        }


@dataclass(frozen=True)
class PendingCapture:
    """Cards of a just-beaten combo waiting for the new owner's decision."""
    owner_id: str
    cards: tuple[Card, ...]

    def find(self, card_id: int) -> Card | None:
        for card in self.cards:
            if card.card_id == card_id:
                return card
        return None

    def without(self, card_id: int) -> PendingCapture:
        return PendingCapture(
            owner_id=self.owner_id,
            cards=tuple(c for c in self.cards if c.card_id != card_id),
        )


@dataclass(frozen=True)
class PlayerState:
    """A seat at the table."""
    player_id: str
    name: str
    is_bot: bool = False
    hand: Hand = field(default_factory=Hand)

    def with_hand(self, hand: Hand) -> PlayerState:
        return replace(self, hand=hand)


@dataclass(frozen=True)
class RingoOffer:
    """Who was last offered a RINGO and at which version of the state."""
    player_id: str
    version: int


@dataclass(frozen=True)
class GameState:
    """
    Complete state of a round.

    The draw pile's top is its last element.
    """
    game_id: str
    players: tuple[PlayerState, ...] = ()
    settings: RoundSettings = field(default_factory=RoundSettings)
    status: GameStatus = GameStatus.LOBBY
    turn_phase: TurnPhase = TurnPhase.WAITING_FOR_PLAY_OR_DRAW
    current_player_index: int = 0

    current_combo: Combo | None = None
    drawn_card: Card | None = None
    ringo_opportunity: RingoOpportunity | None = None
    pending_capture: PendingCapture | None = None

    draw_pile: tuple[Card, ...] = ()
    discard_pile: tuple[Card, ...] = ()

    winner: str | None = None
    skip_next: bool = False
    last_ringo_offer: RingoOffer | None = None

    action_count: int = 0
    random_seed: int = 0

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.current_player_index]

    @property
    def is_over(self) -> bool:
        return self.status == GameStatus.GAME_OVER

    @property
    def card_count(self) -> int:
        return len(full_card_set(self.settings.special_cards))

    def get_player(self, player_id: str) -> PlayerState | None:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def player_index(self, player_id: str) -> int | None:
        for idx, player in enumerate(self.players):
            if player.player_id == player_id:
                return idx
        return None

    def opponents_of(self, player_id: str) -> list[PlayerState]:
        return [p for p in self.players if p.player_id != player_id]

    def next_index(self, index: int | None = None) -> int:
        if index is None:
            index = self.current_player_index
        return (index + 1) % len(self.players)

    def with_player(self, player: PlayerState) -> GameState:
        """Return new state with one player replaced."""
        players = tuple(
            player if p.player_id == player.player_id else p for p in self.players
        )
        return self._copy_with(players=players)

    def rng(self, salt: str = "") -> random.Random:
        """Deterministic RNG for the transition out of this state."""
        return random.Random(f"{self.random_seed}:{self.action_count}:{salt}")

    def with_refilled_draw_pile(self) -> GameState:
        """Shuffle the discard pile into an empty draw pile."""
        if self.draw_pile or not self.discard_pile:
            return self
        pile = list(self.discard_pile)
        self.rng("reshuffle").shuffle(pile)
        return self._copy_with(draw_pile=tuple(pile), discard_pile=())

    def draw_into_hand(self, player_id: str, count: int) -> tuple[GameState, tuple[Card, ...]]:
        """
        Move up to count cards from the pile into a hand (reshuffling as needed).

        Special cards met on the way are discarded; they never enter a hand.
        """
        state = self
        drawn: list[Card] = []
        refilled = False
        while len(drawn) < count:
            if not state.draw_pile:
                if refilled or not state.discard_pile:
                    break
                state = state.with_refilled_draw_pile()
                refilled = True
            card = state.draw_pile[-1]
            state = state._copy_with(draw_pile=state.draw_pile[:-1])
            if card.is_special:
                state = state._copy_with(discard_pile=state.discard_pile + (card,))
                continue
            drawn.append(card)
        player = state.get_player(player_id)
        for card in drawn:
            player = player.with_hand(player.hand.append(card))
        return state.with_player(player), tuple(drawn)

    def _copy_with(self, **kwargs) -> GameState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)

    def locations(self) -> dict[str, tuple[Card, ...]]:
        """Every place a card can be, keyed by a readable name."""
        places = {f"hand:{p.player_id}": p.hand.cards for p in self.players}
        places["draw_pile"] = self.draw_pile
        places["discard_pile"] = self.discard_pile
        places["table"] = self.current_combo.cards if self.current_combo else ()
        places["drawn_card"] = (self.drawn_card,) if self.drawn_card else ()
        places["pending_capture"] = self.pending_capture.cards if self.pending_capture else ()
        return places


def check_invariants(state: GameState) -> None:
    """
    Raise InvariantViolation unless the round's cards are partitioned
    across the state's locations and the turn bookkeeping is coherent.
    """
    seen: dict[int, str] = {}
    for place, cards in state.locations().items():
        for card in cards:
            if card.card_id in seen:
                raise InvariantViolation(
                    f"Card {card.card_id} appears in both {seen[card.card_id]} and {place}"
                )
            seen[card.card_id] = place

    expected = {card.card_id for card in full_card_set(state.settings.special_cards)}
    if set(seen) != expected:
        missing = sorted(expected - set(seen))
        extra = sorted(set(seen) - expected)
        raise InvariantViolation(f"Card set mismatch: missing={missing} unexpected={extra}")

    if not 0 <= state.current_player_index < len(state.players):
        raise InvariantViolation(f"Current player index {state.current_player_index} out of range")

    if state.current_combo is not None and state.get_player(state.current_combo.owner_id) is None:
        raise InvariantViolation(f"Combo owner {state.current_combo.owner_id} is not seated")

    if (state.drawn_card is not None) != (state.turn_phase in DRAWN_CARD_PHASES):
        raise InvariantViolation(f"Drawn card present in phase {state.turn_phase.value}")

    if (state.pending_capture is not None) != (
        state.turn_phase == TurnPhase.WAITING_FOR_CAPTURE_DECISION
    ):
        raise InvariantViolation(f"Pending capture present in phase {state.turn_phase.value}")

    if state.status == GameStatus.GAME_OVER and state.winner is None:
        raise InvariantViolation("Game over without a winner")


def create_game_state(
    players: list[tuple[str, str, bool]],
    settings: RoundSettings | None = None,
    seed: int | None = None,
    first_player_id: str | None = None,
    game_id: str | None = None,
) -> GameState:
    """
    Deal a new round.

    Args:
        players: (player_id, name, is_bot) in seating order
        settings: Round settings (hand size, special cards, turn timer)
        seed: Seed for the shuffle and every later random choice
        first_player_id: Seat that starts (previous winner); random if absent
    """
    if not MIN_PLAYERS <= len(players) <= MAX_PLAYERS:
        raise ValueError(f"Ringo needs {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(players)}")

    settings = settings or RoundSettings()
    if seed is None:
        seed = random.SystemRandom().randrange(2**32)
    rng = random.Random(seed)

    deck = build_deck(settings.special_cards)
    rng.shuffle(deck)

    # specials are shuffled into the draw pile only
    dealable = [c for c in deck if not c.is_special]
    specials = [c for c in deck if c.is_special]

    hand_size = settings.resolved_hand_size(len(players))
    if hand_size * len(players) > len(dealable):
        raise ValueError(f"Hand size {hand_size} is too large for {len(players)} players")

    hands: list[list[Card]] = [[] for _ in players]
    for i in range(hand_size * len(players)):
        hands[i % len(players)].append(dealable.pop())

    draw_pile = dealable + specials
    rng.shuffle(draw_pile)

    seats = tuple(
        PlayerState(player_id=pid, name=name, is_bot=is_bot, hand=Hand.of(hand))
        for (pid, name, is_bot), hand in zip(players, hands)
    )

    ids = [s.player_id for s in seats]
    if first_player_id in ids:
        first = ids.index(first_player_id)
    else:
        first = rng.randrange(len(seats))

    state = GameState(
        game_id=game_id or str(uuid.uuid4())[:8],
        players=seats,
        settings=settings,
        status=GameStatus.PLAYING,
        turn_phase=TurnPhase.WAITING_FOR_PLAY_OR_DRAW,
        current_player_index=first,
        draw_pile=tuple(draw_pile),
        random_seed=seed,
    )
    check_invariants(state)
    return state
