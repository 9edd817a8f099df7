"""
Exception hierarchy for the card protocol engine.

Every error carries a short ``reason`` code that orchestration layers can
forward to clients when a game instance is aborted.
"""


class ProtocolError(Exception):
    """Base class for all protocol failures."""

    reason = 'protocol_error'

    def __init__(self, message=None, reason=None):
        super().__init__(message or self.reason)
        if reason:
            self.reason = reason


class InvalidDomainParameter(ProtocolError):
    """The modulus is not prime or the generator does not generate the group."""

    reason = 'invalid_domain_parameter'


class OutOfRangeSecret(ProtocolError):
    """A secret exponent lies outside [2, p-2]."""

    reason = 'out_of_range_secret'


class NonInvertibleValue(ProtocolError):
    """A modular inverse was requested for a value sharing a factor with the modulus."""

    reason = 'non_invertible_value'


class MalformedCiphertext(ProtocolError):
    """A ciphertext or deck received from a counterparty is not well formed."""

    reason = 'malformed_ciphertext'


class InvalidContribution(ProtocolError):
    """A well-formed contribution that fails verification."""

    reason = 'invalid_contribution'


class StaleOrDuplicateContribution(ProtocolError):
    """A contribution arrived out of turn or was submitted twice."""

    reason = 'stale_or_duplicate_contribution'


class ShuffleRejected(ProtocolError):
    """A shuffle step produced an unusable deck."""

    reason = 'shuffle_rejected'


class UnresponsiveParticipant(ProtocolError):
    """A participant missed the deadline for its turn."""

    reason = 'unresponsive_participant'

    def __init__(self, participant_id, message=None):
        super().__init__(message or f"Participant {participant_id} missed its turn deadline")
        self.participant_id = participant_id


class GameAborted(ProtocolError):
    """An operation was attempted on a game instance that has been aborted."""

    reason = 'game_aborted'
