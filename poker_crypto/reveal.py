"""
Card revelation protocols.

A dealt card is encrypted under the aggregate key, so its plaintext only
appears after every participant has removed their shared-secret share.
For hole cards the owner applies the last share privately; for community
cards all shares are applied and the result is public.
"""
import logging
import time

from poker_crypto.elgamal import check_cipher
from poker_crypto.errors import (
    InvalidContribution,
    StaleOrDuplicateContribution,
    UnresponsiveParticipant,
)

logger = logging.getLogger(__name__)


def collective_decrypt(engine, cipher, shared_secrets):
    """
    Apply every share to a ciphertext and return the plaintext.

    Args:
        engine (ElGamalEngine): Engine for the game's group
        cipher (Cipher): Community card ciphertext
        shared_secrets (iterable): One shared secret per participant, any order

    Returns:
        int: c2 after the last share, i.e. the plaintext when all shares were given
    """
    for secret in shared_secrets:
        cipher = engine.decrypt(cipher, secret)
    return cipher.c2


def reveal_for_owner(engine, cipher, owner_secret, other_secrets):
    """
    Reveal a hole card: every other participant first, the owner last.

    Args:
        engine (ElGamalEngine): Engine for the game's group
        cipher (Cipher): Hole card ciphertext
        owner_secret (int): Owner's shared secret
        other_secrets (iterable): Shared secrets of all other participants

    Returns:
        int: The plaintext as seen by the owner
    """
    for secret in other_secrets:
        cipher = engine.decrypt(cipher, secret)
    return engine.decrypt(cipher, owner_secret).c2


class RevelationSession:
    """
    Collects the partial decryptions for one ciphertext, one contributor at a time.

    Contributors act in a fixed order. A partial result is only handed to the
    next contributor; when all have contributed, the result goes to
    ``recipient`` (the owner of a hole card, who applies the final share
    privately) or, for community cards, ``plaintext`` becomes available.
    """

    def __init__(self, session_id, params, cipher, contributors, recipient=None,
                 turn_timeout=None, clock=time.monotonic):
        """
        Initialize a revelation session.

        Args:
            session_id (str): Identifier used on the wire
            params (DomainParameters): Group parameters
            cipher (Cipher): Ciphertext being revealed
            contributors (list): Participants that must contribute, in order
            recipient (optional): Owner receiving the final partial result;
                None for a collective revelation
            turn_timeout (float, optional): Seconds each contributor has
            clock (callable): Monotonic time source
        """
        if recipient is not None and recipient in contributors:
            raise ValueError("The recipient applies its share privately")
        self.session_id = session_id
        self.params = params
        self.original = check_cipher(cipher, params)
        self.current = cipher
        self.contributors = list(contributors)
        self.recipient = recipient
        self.contributed = []
        self.turn_timeout = turn_timeout
        self.clock = clock
        self.turn_started = clock()

    @property
    def complete(self):
        return len(self.contributed) == len(self.contributors)

    @property
    def next_contributor(self):
        if self.complete:
            return None
        return self.contributors[len(self.contributed)]

    @property
    def plaintext(self):
        """Plaintext of a completed collective revelation."""
        if self.recipient is not None:
            raise PermissionError("Hole card plaintext is only visible to its owner")
        if not self.complete:
            raise StaleOrDuplicateContribution("Revelation still awaits contributions")
        return self.current.c2

    def accept(self, participant_id, partial):
        """
        Record one participant's partial decryption.

        Args:
            participant_id: Contributing participant
            partial (Cipher): The ciphertext after that participant's share

        Returns:
            The next contributor, or None when the session is complete

        Raises:
            StaleOrDuplicateContribution: Duplicate or out-of-turn contribution
            MalformedCiphertext: Component out of range
            InvalidContribution: The contribution changed c1
        """
        if participant_id in self.contributed:
            raise StaleOrDuplicateContribution(
                f"Participant {participant_id} already contributed to {self.session_id}"
            )
        if participant_id != self.next_contributor:
            raise StaleOrDuplicateContribution(
                f"Participant {participant_id} is not next in {self.session_id}"
            )
        check_cipher(partial, self.params)
        if partial.c1 != self.original.c1:
            raise InvalidContribution("Partial decryption must leave c1 unchanged")

        self.current = partial
        self.contributed.append(participant_id)
        self.turn_started = None if self.complete else self.clock()
        logger.info(
            "Session %s: %d/%d contributions",
            self.session_id, len(self.contributed), len(self.contributors),
        )
        return self.next_contributor

    def check_deadline(self):
        if self.turn_timeout is None or self.turn_started is None:
            return
        if self.clock() - self.turn_started > self.turn_timeout:
            raise UnresponsiveParticipant(self.next_contributor)
