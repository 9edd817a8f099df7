"""
In-process driver for a full hand.

All parties live in one process here; each still only touches its own
secrets and exchanges public values through the coordinator, exactly as
the socket server routes them between clients.
"""
import logging

from poker_models.coordinator import STAGES, Coordinator
from poker_models.participant import Participant

logger = logging.getLogger(__name__)


class MentalPokerGame:
    """
    Runs key exchange, shuffling, dealing and revelation for one game instance.
    """

    def __init__(self, config, rng=None):
        """
        Args:
            config (GameConfig): Game configuration (validated here)
            rng (random.Random, optional): Permutation source for every shuffle;
                only for reproducible tests
        """
        self.config = config.validate()
        self.rng = rng
        self.coordinator = Coordinator(config)
        self.participants = []

    def participant(self, participant_id):
        return next(p for p in self.participants if p.id == participant_id)

    def setup(self):
        """
        Seat every participant and run the key exchange.

        Returns:
            int: The aggregate public key
        """
        params = self.config.params
        for i in range(self.config.player_count):
            participant = Participant(f"player-{i + 1}", f"Player {i + 1}", params)
            participant.seat = self.coordinator.seat_participant(participant.id, participant.name)
            self.participants.append(participant)

        aggregate_key = None
        for participant in self.participants:
            shared = participant.derive_shared_key(self.coordinator.public_key)
            aggregate_key = self.coordinator.register_shared_key(
                participant.id, participant.public_key, shared.shared_public_key
            )
        for participant in self.participants:
            participant.accept_aggregate_key(aggregate_key)
        return aggregate_key

    def shuffle(self):
        """
        Pass the deck through every participant's shuffle.

        Returns:
            EncryptedDeck: The submitted deck
        """
        holder, deck = self.coordinator.start_shuffle()
        while holder is not None:
            shuffled = self.participant(holder).shuffle(deck, self.rng)
            holder, deck = self.coordinator.accept_shuffle(holder, shuffled)
        return self.coordinator.pipeline.current_deck

    def _collect(self, session):
        while not session.complete:
            contributor = self.participant(session.next_contributor)
            self.coordinator.submit_partial(
                session.session_id, contributor.id, contributor.partial_decrypt(session.current)
            )
        return session

    def reveal_hole_cards(self, participant_id):
        """
        Reveal a participant's hole cards to that participant.

        Returns:
            list: Card numbers, as computed by the owner
        """
        owner = self.participant(participant_id)
        sessions = self.coordinator.open_hole_reveal(participant_id)
        return [owner.reveal(self._collect(session).current) for session in sessions]

    def reveal_community(self, stage):
        """
        Collectively reveal one community stage.

        Returns:
            list: Card numbers of the stage
        """
        sessions = self.coordinator.open_community_reveal(stage)
        return [self._collect(session).plaintext for session in sessions]

    def play(self):
        """
        Run a whole hand.

        Returns:
            dict: 'hole' (participant id -> card numbers) and one entry per stage
        """
        self.setup()
        self.shuffle()
        self.coordinator.deal_cards()
        result = {
            'hole': {p.id: self.reveal_hole_cards(p.id) for p in self.participants},
        }
        for stage in STAGES:
            result[stage] = self.reveal_community(stage)
        logger.info("Hand complete")
        return result
