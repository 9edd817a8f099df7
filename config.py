"""
Game configuration.

Defaults match a Texas Hold'em table of eight; every value can be
overridden through environment variables.
"""
import os

from poker_crypto.params import DomainParameters, default_parameters
from poker_models.cards import DECK_SIZE

PLAYER_COUNT = 8
CARDS_PER_PLAYER = 2
COMMUNITY_CARDS = 5
TURN_TIMEOUT = 30.0


def _env_bool(value):
    return value.strip().lower() not in ('0', 'false', 'no', 'off', '')


class GameConfig:
    """
    Settings of one game instance.
    """

    def __init__(self, player_count=PLAYER_COUNT, cards_per_player=CARDS_PER_PLAYER,
                 community_cards=COMMUNITY_CARDS, deck_size=DECK_SIZE, strict_shuffle=True,
                 turn_timeout=TURN_TIMEOUT, params=None):
        """
        Initialize a configuration.

        Args:
            player_count (int): Number of participants
            cards_per_player (int): Hole cards dealt to each participant
            community_cards (int): Community cards dealt face up
            deck_size (int): Number of cards in the deck
            strict_shuffle (bool): Abort when a shuffle leaves the deck unchanged
            turn_timeout (float): Seconds per participant turn, None for no deadline
            params (DomainParameters, optional): Group; the default 256-bit group if omitted
        """
        self.player_count = player_count
        self.cards_per_player = cards_per_player
        self.community_cards = community_cards
        self.deck_size = deck_size
        self.strict_shuffle = strict_shuffle
        self.turn_timeout = turn_timeout
        self.params = params or default_parameters()

    def validate(self):
        """
        Check the table fits the deck and the group is sound.

        Returns:
            GameConfig: self
        """
        if self.player_count < 2:
            raise ValueError("A game needs at least two participants")
        if not 1 <= self.deck_size <= DECK_SIZE:
            raise ValueError(f"Deck size must lie in 1..{DECK_SIZE}")
        needed = self.player_count * self.cards_per_player + self.community_cards
        if needed > self.deck_size:
            raise ValueError(
                f"{self.player_count} players need {needed} cards; the deck has {self.deck_size}"
            )
        if self.deck_size >= self.params.p:
            raise ValueError("Card numbers must be smaller than the group prime")
        self.params.validate()
        return self

    @classmethod
    def from_env(cls, environ=None):
        """
        Build a configuration from POKER_* environment variables.

        Args:
            environ (dict, optional): Mapping to read instead of os.environ

        Returns:
            GameConfig: The configuration (not yet validated)
        """
        env = os.environ if environ is None else environ
        params = None
        if env.get('POKER_PRIME') and env.get('POKER_GENERATOR'):
            params = DomainParameters(int(env['POKER_PRIME'], 0), int(env['POKER_GENERATOR'], 0))

        timeout = env.get('POKER_TURN_TIMEOUT')
        return cls(
            player_count=int(env.get('POKER_PLAYER_COUNT', PLAYER_COUNT)),
            cards_per_player=int(env.get('POKER_CARDS_PER_PLAYER', CARDS_PER_PLAYER)),
            community_cards=int(env.get('POKER_COMMUNITY_CARDS', COMMUNITY_CARDS)),
            strict_shuffle=_env_bool(env.get('POKER_STRICT_SHUFFLE', 'true')),
            turn_timeout=float(timeout) if timeout else TURN_TIMEOUT,
            params=params,
        )
