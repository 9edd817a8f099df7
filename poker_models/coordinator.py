"""
Coordinator model for the poker table.

The coordinator seats participants, collects their shared public keys,
fixes the aggregate key, encrypts the deck, owns the shuffle pipeline and
routes partial decryptions. It never holds a participant's secret key.
"""
import itertools
import logging
import time

from poker_crypto.deck import EncryptedDeck, deal_deck
from poker_crypto.elgamal import ElGamalEngine
from poker_crypto.errors import (
    GameAborted,
    InvalidContribution,
    ProtocolError,
    ShuffleRejected,
    StaleOrDuplicateContribution,
    UnresponsiveParticipant,
)
from poker_crypto.keys import compute_aggregate_key, generate_keypair, verify_shared_key
from poker_crypto.reveal import RevelationSession
from poker_crypto.shuffle import ShufflePipeline

logger = logging.getLogger(__name__)

STAGES = ('flop', 'turn', 'river')


class TableFull(ProtocolError):
    reason = 'table_full'


class Coordinator:
    """
    Orchestrates one game instance.

    Phases run strictly in order: seating, key exchange, shuffling, dealt.
    Any fatal protocol error moves the game to aborted with a reason code.
    """

    def __init__(self, config, clock=time.monotonic):
        """
        Initialize the coordinator.

        Args:
            config (GameConfig): Validated game configuration
            clock (callable): Monotonic time source for turn deadlines
        """
        self.config = config
        self.params = config.params
        self.engine = ElGamalEngine(self.params)
        self.clock = clock

        self.keys = generate_keypair(self.params)
        self.public_key = self.keys.public_key

        self.seats = []  # participant ids in turn order
        self.names = {}
        self.public_keys = {}
        self.shared_public_keys = {}
        self.aggregate_key = None

        self.pipeline = None
        self.deal = None
        self.sessions = {}
        self.aborted_reason = None
        self._session_ids = itertools.count(1)

    @property
    def phase(self):
        if self.aborted_reason:
            return 'aborted'
        if self.deal is not None:
            return 'dealt'
        if self.pipeline is not None:
            return 'shuffling'
        if len(self.seats) == self.config.player_count:
            return 'key_exchange'
        return 'seating'

    def _ensure_active(self):
        if self.aborted_reason:
            raise GameAborted(f"Game aborted: {self.aborted_reason}")

    def abort(self, reason):
        """Abort the game instance with a reason code."""
        if self.aborted_reason:
            return
        self.aborted_reason = reason
        if self.pipeline is not None:
            self.pipeline.abort(reason)
        logger.warning("Game aborted: %s", reason)

    def seat_participant(self, participant_id, name):
        """
        Seat a participant at the next free seat.

        Returns:
            int: The seat index, which is also the shuffle turn order
        """
        self._ensure_active()
        if participant_id in self.names:
            raise StaleOrDuplicateContribution(f"Participant {participant_id} already seated")
        if len(self.seats) >= self.config.player_count:
            raise TableFull(f"Table is full ({self.config.player_count} players)")
        self.seats.append(participant_id)
        self.names[participant_id] = name
        return len(self.seats) - 1

    def unseat(self, participant_id):
        """
        Release a seat while the table is still filling up.

        Later participants move up one seat, keeping the turn order contiguous.
        """
        self._ensure_active()
        if self.phase != 'seating':
            raise StaleOrDuplicateContribution("Seats are fixed once the table is full")
        if participant_id not in self.names:
            raise StaleOrDuplicateContribution(f"Participant {participant_id} is not seated")
        self.seats.remove(participant_id)
        del self.names[participant_id]
        logger.info("Participant %s left before the game started", participant_id)

    def register_shared_key(self, participant_id, public_key, shared_public_key):
        """
        Record a participant's public key and DH shared public key.

        The shared public key is checked against the coordinator's own
        derivation of the same shared secret.

        Returns:
            int or None: The aggregate key once every seat has registered
        """
        self._ensure_active()
        if participant_id not in self.names:
            raise StaleOrDuplicateContribution(f"Participant {participant_id} is not seated")
        if self.aggregate_key is not None or participant_id in self.shared_public_keys:
            raise StaleOrDuplicateContribution(
                f"Participant {participant_id}'s shared key is already registered"
            )
        if not 1 < public_key < self.params.p:
            raise InvalidContribution("Public key outside the group")
        if not verify_shared_key(self.keys, public_key, shared_public_key):
            raise InvalidContribution(
                f"Shared public key of participant {participant_id} does not match"
            )

        self.public_keys[participant_id] = public_key
        self.shared_public_keys[participant_id] = shared_public_key
        if len(self.seats) == self.config.player_count and \
                len(self.shared_public_keys) == len(self.seats):
            return self.fix_aggregate_key()
        return None

    def fix_aggregate_key(self):
        """Compute the aggregate key; it is immutable afterwards."""
        self._ensure_active()
        if self.aggregate_key is not None:
            return self.aggregate_key
        missing = [pid for pid in self.seats if pid not in self.shared_public_keys]
        if missing or len(self.seats) < self.config.player_count:
            raise StaleOrDuplicateContribution("Not every seat has registered a shared key")
        self.aggregate_key = compute_aggregate_key(
            self.params, [self.shared_public_keys[pid] for pid in self.seats]
        )
        return self.aggregate_key

    def encrypt_deck(self):
        """Encrypt card numbers 1..deck_size under the aggregate key."""
        if self.aggregate_key is None:
            raise StaleOrDuplicateContribution("Aggregate key not fixed yet")
        return EncryptedDeck(
            self.engine.encrypt(card, self.aggregate_key)
            for card in range(1, self.config.deck_size + 1)
        )

    def start_shuffle(self):
        """
        Encrypt the deck and hand it to the first seat.

        Returns:
            tuple: (first holder id, version-0 deck)
        """
        self._ensure_active()
        if self.pipeline is not None:
            raise StaleOrDuplicateContribution("Shuffle phase already started")
        pipeline = ShufflePipeline(
            self.params,
            self.seats,
            self.config.deck_size,
            strict=self.config.strict_shuffle,
            turn_timeout=self.config.turn_timeout,
            clock=self.clock,
        )
        deck = self.encrypt_deck()
        holder = pipeline.start(deck)
        self.pipeline = pipeline
        return holder, deck

    def accept_shuffle(self, participant_id, deck):
        """
        Accept a shuffle step from the current deck holder.

        A rejected shuffle aborts the game; an out-of-turn submission is
        rejected without changing any state.

        Returns:
            tuple: (next holder id, deck to hand on); (None, None) once dealt
        """
        self._ensure_active()
        if self.pipeline is None:
            raise StaleOrDuplicateContribution("Shuffle phase has not started")
        try:
            holder = self.pipeline.accept(participant_id, deck)
        except ShuffleRejected as e:
            self.abort(e.reason)
            raise
        if holder is None:
            self.deal_cards()
            return None, None
        return holder, self.pipeline.current_deck

    def deal_cards(self):
        self._ensure_active()
        if self.deal is None:
            self.deal = deal_deck(
                self.pipeline.current_deck,
                self.seats,
                self.config.cards_per_player,
                self.config.community_cards,
            )
            logger.info("Dealt %d hole cards and %d community cards",
                        len(self.seats) * self.config.cards_per_player,
                        self.config.community_cards)
        return self.deal

    def _open_session(self, cipher, contributors, recipient=None):
        session = RevelationSession(
            f"s{next(self._session_ids)}",
            self.params,
            cipher,
            contributors,
            recipient=recipient,
            turn_timeout=self.config.turn_timeout,
            clock=self.clock,
        )
        self.sessions[session.session_id] = session
        return session

    def open_hole_reveal(self, participant_id):
        """
        Start revealing a participant's hole cards to that participant.

        Every other seat contributes in turn order; the final partial result
        goes to the owner.

        Returns:
            list: One RevelationSession per hole card
        """
        self._ensure_active()
        if self.deal is None:
            raise StaleOrDuplicateContribution("Cards have not been dealt")
        if participant_id not in self.deal.hole_cards:
            raise StaleOrDuplicateContribution(f"Participant {participant_id} has no hole cards")
        others = [pid for pid in self.seats if pid != participant_id]
        return [
            self._open_session(cipher, others, recipient=participant_id)
            for cipher in self.deal.hole_cards[participant_id]
        ]

    def open_community_reveal(self, stage):
        """
        Start the collective revelation of a community stage.

        Returns:
            list: One RevelationSession per card of the stage
        """
        self._ensure_active()
        if self.deal is None:
            raise StaleOrDuplicateContribution("Cards have not been dealt")
        return [self._open_session(cipher, self.seats) for cipher in self.deal.stage(stage)]

    def submit_partial(self, session_id, participant_id, cipher):
        """
        Route a partial decryption into its session.

        Returns:
            RevelationSession: The updated session
        """
        self._ensure_active()
        session = self.sessions.get(session_id)
        if session is None:
            raise StaleOrDuplicateContribution(f"Unknown revelation session {session_id}")
        session.accept(participant_id, cipher)
        if session.complete:
            del self.sessions[session_id]
        return session

    def check_deadlines(self):
        """
        Abort the game if any participant overran its turn.

        Raises:
            UnresponsiveParticipant: The participant that missed its deadline
        """
        if self.aborted_reason:
            return
        try:
            if self.pipeline is not None and not self.pipeline.submitted:
                self.pipeline.check_deadline()
            for session in list(self.sessions.values()):
                session.check_deadline()
        except UnresponsiveParticipant as e:
            self.abort(e.reason)
            raise

    def to_dict(self):
        """Public table state."""
        return {
            'phase': self.phase,
            'params': self.params.to_dict(),
            'coordinatorPublicKey': hex(self.public_key),
            'aggregateKey': hex(self.aggregate_key) if self.aggregate_key else None,
            'seats': [{'id': pid, 'name': self.names[pid]} for pid in self.seats],
            'abortedReason': self.aborted_reason,
        }
