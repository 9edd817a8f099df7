"""
Encrypted deck and the dealing partition.

A deck is a versioned, immutable sequence of ciphertexts. Every shuffle step
produces a new deck with the next version instead of mutating the previous
one, so a deck is only ever owned by one pipeline stage at a time.
"""
from poker_crypto.elgamal import Cipher, check_cipher
from poker_crypto.errors import MalformedCiphertext, ShuffleRejected


class EncryptedDeck:
    """
    An ordered sequence of ciphertexts.

    ``version`` counts the shuffle steps applied so far (0 right after the
    coordinator encrypted it). A deck is ``submitted`` once every participant
    has shuffled it; it is final from then on.
    """

    def __init__(self, cards, version=0, submitted=False):
        """
        Initialize a deck.

        Args:
            cards (iterable): Cipher values in deck order
            version (int): Number of shuffle steps already applied
            submitted (bool): Whether the shuffle phase is complete
        """
        self.cards = tuple(cards)
        self.version = version
        self.submitted = submitted

    def __len__(self):
        return len(self.cards)

    def __iter__(self):
        return iter(self.cards)

    def __getitem__(self, index):
        return self.cards[index]

    def __repr__(self):
        state = 'submitted' if self.submitted else f"encrypted({self.version})"
        return f"EncryptedDeck({len(self.cards)} cards, {state})"

    def next_version(self, cards):
        """Return the deck produced by the next shuffle step."""
        if self.submitted:
            raise ShuffleRejected("Deck has already been submitted")
        return EncryptedDeck(cards, self.version + 1)

    def submit(self):
        """Return this deck marked final."""
        return EncryptedDeck(self.cards, self.version, submitted=True)

    def differs_from(self, other):
        """True if any position holds a different ciphertext than in ``other``."""
        if len(self) != len(other):
            return True
        return any(a != b for a, b in zip(self.cards, other.cards))

    def validate(self, params, size):
        """
        Check the deck size and every ciphertext.

        Raises:
            ShuffleRejected: If the deck has the wrong number of cards
            MalformedCiphertext: If any ciphertext is out of range
        """
        if len(self.cards) != size:
            raise ShuffleRejected(f"Deck has {len(self.cards)} cards, expected {size}")
        for cipher in self.cards:
            check_cipher(cipher, params)
        return self

    def to_dict(self):
        """
        Convert the deck to a dictionary for JSON serialization.

        Returns:
            dict: Dictionary representation of the deck
        """
        return {
            'version': self.version,
            'submitted': self.submitted,
            'cards': [c.to_dict() for c in self.cards],
        }

    @classmethod
    def from_dict(cls, data, params=None):
        """
        Create a deck from a dictionary received from a counterparty.

        The ``submitted`` flag of the payload is ignored: only the shuffle
        pipeline marks a deck final.

        Args:
            data (dict): Dictionary representation of a deck
            params (DomainParameters, optional): Range check every ciphertext

        Returns:
            EncryptedDeck: A new deck
        """
        cards = data.get('cards') if isinstance(data, dict) else None
        if not isinstance(cards, list):
            raise MalformedCiphertext("Deck payload has no card list")
        try:
            version = int(data.get('version', 0))
        except (TypeError, ValueError) as e:
            raise MalformedCiphertext(f"Unreadable deck version: {e}") from e
        return cls([Cipher.from_dict(c, params) for c in cards], version)


class Deal:
    """
    Partition of a submitted deck into hole cards and community cards.
    """

    def __init__(self, hole_cards, community):
        """
        Args:
            hole_cards (dict): participant id -> list of Cipher
            community (list): Community card ciphertexts
        """
        self.hole_cards = hole_cards
        self.community = list(community)

    @property
    def flop(self):
        return self.community[:3]

    @property
    def turn(self):
        return self.community[3:4]

    @property
    def river(self):
        return self.community[4:5]

    def stage(self, name):
        """Return the community cards of a stage: 'flop', 'turn' or 'river'."""
        if name not in ('flop', 'turn', 'river'):
            raise ValueError(f"Unknown stage: {name}")
        return getattr(self, name)

    def to_dict(self):
        return {
            'holeCards': {
                str(pid): [c.to_dict() for c in cards]
                for pid, cards in self.hole_cards.items()
            },
            'community': [c.to_dict() for c in self.community],
        }


def deal_deck(deck, participant_ids, cards_per_player=2, community_cards=5):
    """
    Split a submitted deck into hole cards and community cards.

    The first ``cards_per_player * len(participant_ids)`` ciphertexts go out
    in contiguous groups, one group per participant in turn order; the next
    ``community_cards`` are the community cards.

    Args:
        deck (EncryptedDeck): A submitted deck
        participant_ids (list): Participants in turn order
        cards_per_player (int): Hole cards per participant
        community_cards (int): Number of community cards

    Returns:
        Deal: The partition
    """
    if not deck.submitted:
        raise ShuffleRejected("Cannot deal before every participant has shuffled")

    hole_total = cards_per_player * len(participant_ids)
    if hole_total + community_cards > len(deck):
        raise ValueError("Deck too small for this table")

    hole_cards = {}
    for seat, pid in enumerate(participant_ids):
        start = seat * cards_per_player
        hole_cards[pid] = list(deck.cards[start:start + cards_per_player])
    community = deck.cards[hole_total:hole_total + community_cards]
    return Deal(hole_cards, community)
