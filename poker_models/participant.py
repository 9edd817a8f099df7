"""
Participant model for the poker table.
"""
import logging
import time

from poker_crypto.elgamal import ElGamalEngine
from poker_crypto.errors import StaleOrDuplicateContribution
from poker_crypto.keys import derive_shared_key, generate_keypair
from poker_crypto.shuffle import ShuffleNode

logger = logging.getLogger(__name__)


class Participant:
    """
    Represents a player at the table.

    The participant's secret key and shared secret stay inside this object;
    only public values leave it through ``to_dict``.
    """

    def __init__(self, id, name, params, generate_keys=True):
        """
        Initialize a new participant.

        Args:
            id (str): The participant's ID (usually socket ID)
            name (str): The participant's display name
            params (DomainParameters): Group of the game instance
            generate_keys (bool): Whether to generate a key pair now
        """
        self.id = id
        self.name = name
        self.params = params
        self.engine = ElGamalEngine(params)
        self.seat = None
        self.joined_at = int(time.time() * 1000)

        # Encryption keys
        self.keys = None
        self.public_key = None
        self.shared = None
        self.shared_public_key = None
        self.aggregate_key = None

        if generate_keys:
            self.generate_encryption_keys()

    def generate_encryption_keys(self):
        """Generate the participant's ElGamal key pair."""
        if self.shared is not None:
            raise StaleOrDuplicateContribution("Keys are fixed once a shared key exists")
        self.keys = generate_keypair(self.params)
        self.public_key = self.keys.public_key
        return self.keys

    def derive_shared_key(self, coordinator_public_key):
        """
        Derive the Diffie-Hellman shared key with the coordinator.

        Deriving again against the same coordinator key returns the existing
        shared key. A different coordinator key is refused once the aggregate
        key has been fixed.

        Args:
            coordinator_public_key (int): The coordinator's public key

        Returns:
            SharedKeyPair: The participant's shared key
        """
        if self.shared is not None:
            if self.shared.counterparty_public_key == coordinator_public_key:
                return self.shared
            if self.aggregate_key is not None:
                raise StaleOrDuplicateContribution(
                    f"Participant {self.id}'s shared key is fixed by the aggregate key"
                )
        self.shared = derive_shared_key(self.keys, coordinator_public_key)
        self.shared_public_key = self.shared.shared_public_key
        logger.info("Participant %s derived its shared key with the coordinator", self.id)
        return self.shared

    def accept_aggregate_key(self, aggregate_key):
        """Record the published aggregate key; the shared key is fixed from now on."""
        if self.shared is None:
            raise StaleOrDuplicateContribution("No shared key derived yet")
        self.aggregate_key = aggregate_key

    def shuffle_node(self, rng=None):
        """This participant's stage of the shuffle cascade."""
        if self.aggregate_key is None:
            raise StaleOrDuplicateContribution("Aggregate key not published yet")
        return ShuffleNode(self.id, self.engine, self.aggregate_key, rng)

    def shuffle(self, deck, rng=None):
        """
        Shuffle and rerandomize the deck during this participant's turn.

        Args:
            deck (EncryptedDeck): Deck received from the previous holder
            rng (random.Random, optional): Permutation source

        Returns:
            EncryptedDeck: The deck to hand on
        """
        return self.shuffle_node(rng).process(deck)

    def partial_decrypt(self, cipher):
        """
        Remove this participant's share from a ciphertext.

        Args:
            cipher (Cipher): Card ciphertext (possibly already partially decrypted)

        Returns:
            Cipher: The contribution to hand on
        """
        return self.engine.decrypt(cipher, self.shared.shared_secret)

    def reveal(self, cipher):
        """
        Apply the final share to one of this participant's hole cards.

        Args:
            cipher (Cipher): Hole card after every other participant's share

        Returns:
            int: The card number
        """
        return self.partial_decrypt(cipher).c2

    def to_dict(self):
        """
        Convert the participant to a dictionary for JSON serialization.

        Returns:
            dict: Dictionary representation of the participant
        """
        return {
            'id': self.id,
            'name': self.name,
            'seat': self.seat,
            'joinedAt': self.joined_at,
            'publicKey': hex(self.public_key) if self.public_key else None,
            'sharedPublicKey': hex(self.shared_public_key) if self.shared_public_key else None,
            # Note: secret key and shared secret are never included
        }
