"""
Shuffle and re-encryption pipeline.

The encrypted deck passes through a cascade of participants in a fixed turn
order. Each participant permutes the ciphertexts and rerandomizes every one
of them under the aggregate key, so nobody can link positions before and
after their turn without the permutation and randomness they used.
"""
import logging
import secrets
import time

from poker_crypto.errors import (
    GameAborted,
    ShuffleRejected,
    StaleOrDuplicateContribution,
    UnresponsiveParticipant,
)

logger = logging.getLogger(__name__)

_system_random = secrets.SystemRandom()


def shuffle_and_reencrypt(engine, deck, public_key, rng=None):
    """
    Apply one participant's shuffle step.

    Args:
        engine (ElGamalEngine): Engine for the game's group
        deck (EncryptedDeck): Deck received from the previous holder
        public_key (int): Aggregate public key
        rng (random.Random, optional): Source for the permutation; defaults to
            the operating system's secure generator

    Returns:
        EncryptedDeck: The next deck version
    """
    cards = list(deck.cards)
    (rng or _system_random).shuffle(cards)
    return deck.next_version([engine.rerandomize(c, public_key) for c in cards])


class ShuffleNode:
    """
    Single participant's stage in the shuffle cascade.
    """

    def __init__(self, participant_id, engine, public_key, rng=None):
        """
        Initialize a shuffle node.

        Args:
            participant_id: Identifier of the participant running this stage
            engine (ElGamalEngine): Engine for the game's group
            public_key (int): Aggregate public key
            rng (random.Random, optional): Permutation source
        """
        self.participant_id = participant_id
        self.engine = engine
        self.public_key = public_key
        self.rng = rng

    def process(self, deck):
        """
        Shuffle and rerandomize the deck handed to this node.

        Returns:
            EncryptedDeck: The deck to hand to the next node
        """
        logger.info("[%s] Shuffling deck version %d", self.participant_id, deck.version)
        return shuffle_and_reencrypt(self.engine, deck, self.public_key, self.rng)


class ShufflePipeline:
    """
    Sequences the shuffle cascade over all participants.

    The pipeline holds the only current deck and knows which participant
    holds the deck token. Steps from anyone else, or for a deck version other
    than the next one, are rejected without touching the current deck.
    """

    def __init__(self, params, turn_order, deck_size, strict=True, turn_timeout=None,
                 clock=time.monotonic):
        """
        Initialize the pipeline.

        Args:
            params (DomainParameters): Group parameters for validating decks
            turn_order (list): Participant ids in turn order
            deck_size (int): Expected number of ciphertexts
            strict (bool): Reject a step that leaves the deck unchanged
                instead of only logging a warning
            turn_timeout (float, optional): Seconds each holder has for its turn
            clock (callable): Monotonic time source
        """
        if not turn_order:
            raise ValueError("Shuffle pipeline needs at least one participant")
        self.params = params
        self.turn_order = list(turn_order)
        self.deck_size = deck_size
        self.strict = strict
        self.turn_timeout = turn_timeout
        self.clock = clock

        self.current_deck = None
        self.turn_index = 0
        self.turn_started = None
        self.aborted_reason = None

    @property
    def started(self):
        return self.current_deck is not None

    @property
    def submitted(self):
        return self.started and self.turn_index == len(self.turn_order)

    @property
    def current_holder(self):
        """Participant that must submit the next step, or None once submitted."""
        if not self.started or self.submitted:
            return None
        return self.turn_order[self.turn_index]

    def start(self, deck):
        """
        Hand the freshly encrypted deck to the first participant.

        Args:
            deck (EncryptedDeck): Version-0 deck encrypted by the coordinator

        Returns:
            The id of the first holder
        """
        if self.started:
            raise StaleOrDuplicateContribution("Shuffle phase already started")
        deck.validate(self.params, self.deck_size)
        self.current_deck = deck
        self.turn_index = 0
        self.turn_started = self.clock()
        logger.info("Shuffle phase started; %s holds the deck", self.current_holder)
        return self.current_holder

    def accept(self, participant_id, deck):
        """
        Accept a participant's shuffled deck.

        Args:
            participant_id: Submitting participant
            deck (EncryptedDeck): The participant's output

        Returns:
            The id of the next holder, or None if the deck is now submitted

        Raises:
            StaleOrDuplicateContribution: Out of turn, or wrong deck version
            ShuffleRejected: Deck already marked final, wrong size, or
                unchanged deck under strict policy
            MalformedCiphertext: Any ciphertext out of range
        """
        if self.aborted_reason:
            raise GameAborted(f"Shuffle aborted: {self.aborted_reason}")
        if not self.started:
            raise StaleOrDuplicateContribution("Shuffle phase has not started")
        if self.submitted:
            raise StaleOrDuplicateContribution("Deck already submitted")
        if participant_id != self.current_holder:
            raise StaleOrDuplicateContribution(
                f"Participant {participant_id} does not hold the deck"
            )
        expected_version = self.current_deck.version + 1
        if deck.version != expected_version:
            raise StaleOrDuplicateContribution(
                f"Deck version {deck.version} submitted, expected {expected_version}"
            )
        if deck.submitted:
            raise ShuffleRejected(
                f"Participant {participant_id} cannot mark the deck final"
            )
        deck.validate(self.params, self.deck_size)

        if not deck.differs_from(self.current_deck):
            if self.strict:
                raise ShuffleRejected(
                    f"Participant {participant_id}'s shuffle left the deck unchanged"
                )
            logger.warning(
                "Participant %s's shuffle/re-encryption may not have changed the deck",
                participant_id,
            )
        else:
            logger.info("Participant %s shuffled and re-encrypted the deck", participant_id)

        self.turn_index += 1
        if self.submitted:
            self.current_deck = deck.submit()
            self.turn_started = None
            logger.info("Deck submitted after %d shuffle steps", deck.version)
            return None

        self.current_deck = deck
        self.turn_started = self.clock()
        return self.current_holder

    def check_deadline(self):
        """
        Raise if the current holder has overrun its turn.

        Raises:
            UnresponsiveParticipant: When the turn timeout has elapsed
        """
        if self.turn_timeout is None or self.turn_started is None:
            return
        if self.clock() - self.turn_started > self.turn_timeout:
            raise UnresponsiveParticipant(self.current_holder)

    def abort(self, reason):
        self.aborted_reason = reason
        self.turn_started = None
