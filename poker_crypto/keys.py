"""
Key management for the card protocol.

Each identity (coordinator or participant) owns one key pair. Every
participant runs Diffie-Hellman against the coordinator's public key to get
a shared secret; the aggregate encryption key is the product of the
participants' shared public keys, so decrypting under it needs every
participant's shared secret.
"""
import logging
from functools import reduce

from poker_crypto.arithmetic import mod_pow, random_in_range
from poker_crypto.errors import InvalidContribution, OutOfRangeSecret

logger = logging.getLogger(__name__)


class KeyPair:
    """
    Secret exponent and matching public key of one identity.

    The secret key never leaves the owning identity; ``to_dict`` only
    exposes the public half.
    """

    def __init__(self, params, secret_key):
        """
        Initialize a key pair from an existing secret.

        Args:
            params (DomainParameters): Group the key lives in
            secret_key (int): Secret exponent in [2, p-2]

        Raises:
            OutOfRangeSecret: If the secret lies outside [2, p-2]
        """
        if not 2 <= secret_key <= params.p - 2:
            raise OutOfRangeSecret("Secret key outside [2, p-2]")
        self.params = params
        self.secret_key = secret_key
        self.public_key = mod_pow(params.g, secret_key, params.p)

    def __repr__(self):
        return f"KeyPair(public_key={hex(self.public_key)[:18]}...)"

    def to_dict(self):
        # Note: secret_key is never included
        return {'publicKey': hex(self.public_key)}


class SharedKeyPair:
    """
    Diffie-Hellman shared secret between a participant and the coordinator.

    ``shared_public_key`` is published and feeds the aggregate key;
    ``shared_secret`` is the participant's decryption share.
    """

    def __init__(self, params, shared_secret, counterparty_public_key):
        self.params = params
        self.shared_secret = shared_secret
        self.shared_public_key = mod_pow(params.g, shared_secret, params.p)
        self.counterparty_public_key = counterparty_public_key

    def __repr__(self):
        return f"SharedKeyPair(shared_public_key={hex(self.shared_public_key)[:18]}...)"

    def to_dict(self):
        return {'sharedPublicKey': hex(self.shared_public_key)}


def generate_keypair(params):
    """
    Generate a fresh key pair.

    Args:
        params (DomainParameters): Group to generate the key in

    Returns:
        KeyPair: New key material; the caller keeps the secret key private
    """
    while True:
        secret = random_in_range(2, params.p - 2)
        try:
            return KeyPair(params, secret)
        except OutOfRangeSecret:
            # Resample rather than fail
            continue


def derive_shared_key(own, counterparty_public_key):
    """
    Run Diffie-Hellman against a counterparty public key.

    Args:
        own (KeyPair): The caller's key pair
        counterparty_public_key (int): The coordinator's public key

    Returns:
        SharedKeyPair: Shared secret and its public key
    """
    params = own.params
    if not 1 < counterparty_public_key < params.p:
        raise InvalidContribution("Counterparty public key outside the group")
    shared_secret = mod_pow(counterparty_public_key, own.secret_key, params.p)
    return SharedKeyPair(params, shared_secret, counterparty_public_key)


def verify_shared_key(own, participant_public_key, shared_public_key):
    """
    Check a participant's published shared public key from the other side.

    By Diffie-Hellman symmetry the coordinator derives the same shared
    secret as participant_public_key^coordinator_secret.

    Args:
        own (KeyPair): The coordinator's key pair
        participant_public_key (int): The participant's public key
        shared_public_key (int): The shared public key the participant published

    Returns:
        bool: True if the published key matches
    """
    params = own.params
    shared_secret = mod_pow(participant_public_key, own.secret_key, params.p)
    return mod_pow(params.g, shared_secret, params.p) == shared_public_key


def compute_aggregate_key(params, shared_public_keys):
    """
    Multiply the shared public keys together modulo p.

    Args:
        params (DomainParameters): Group parameters
        shared_public_keys (iterable): Shared public keys, in seat order

    Returns:
        int: The aggregate public key
    """
    keys = list(shared_public_keys)
    aggregate = reduce(lambda acc, key: (acc * key) % params.p, keys, 1)
    logger.info("Aggregate public key computed from %d shared keys", len(keys))
    return aggregate
