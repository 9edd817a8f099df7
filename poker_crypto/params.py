"""
Domain parameters shared by every party of a game instance.

A game runs in the multiplicative group modulo a prime ``p`` with a
generator ``g``. Neither value is secret. Validation checks primality of
``p`` and that ``g`` has full order ``p - 1``, which requires the prime
factors of ``p - 1``; known factorizations can be shipped alongside the
parameters so validation never has to factor large numbers.
"""
import logging

import sympy
from cryptography.hazmat.primitives.asymmetric import dh

from poker_crypto.arithmetic import mod_pow
from poker_crypto.errors import InvalidDomainParameter

logger = logging.getLogger(__name__)

# 256-bit prime used by the reference card game.
DEFAULT_PRIME = int(
    '208351617316091241234326746312124448251235562226470491514186331217050270460481'
)
# Smallest primitive root of DEFAULT_PRIME.
DEFAULT_GENERATOR = 29
# Prime factors of DEFAULT_PRIME - 1 = 2^6 * 3^2 * 5 * 13^2 * 6847162841 * q
DEFAULT_ORDER_FACTORS = (
    2,
    3,
    5,
    13,
    6847162841,
    62518280849413946623979314474273652011160178111074600521170349,
)


class DomainParameters:
    """
    Prime modulus and generator of a game instance.

    Instances are treated as immutable once created.
    """

    def __init__(self, p, g, order_factors=None):
        """
        Initialize domain parameters.

        Args:
            p (int): Prime modulus
            g (int): Generator of the multiplicative group modulo p
            order_factors (iterable, optional): Distinct prime factors of p - 1.
                When omitted they are computed with sympy on validation.
        """
        self.p = int(p)
        self.g = int(g)
        self.order_factors = tuple(sorted(set(order_factors))) if order_factors else None

    def __eq__(self, other):
        if not isinstance(other, DomainParameters):
            return NotImplemented
        return self.p == other.p and self.g == other.g

    def __hash__(self):
        return hash((self.p, self.g))

    def __repr__(self):
        return f"DomainParameters(p=<{self.p.bit_length()}-bit>, g={self.g})"

    def prime_factors_of_order(self):
        """
        Return the distinct prime factors of p - 1.

        Shipped factors are checked to multiply out to p - 1 exactly.
        """
        order = self.p - 1
        if self.order_factors is None:
            return tuple(sympy.primefactors(order))

        remaining = order
        for q in self.order_factors:
            if q < 2 or remaining % q or not sympy.isprime(q):
                raise InvalidDomainParameter(f"{q} is not a prime factor of p - 1")
            while remaining % q == 0:
                remaining //= q
        if remaining != 1:
            raise InvalidDomainParameter("Shipped factorization of p - 1 is incomplete")
        return self.order_factors

    def validate(self):
        """
        Check that p is prime and g generates the full group.

        Returns:
            DomainParameters: self, to allow chaining

        Raises:
            InvalidDomainParameter: If either check fails
        """
        if self.p < 5 or not sympy.isprime(self.p):
            raise InvalidDomainParameter("Modulus p is not prime")
        if not 1 < self.g < self.p - 1:
            raise InvalidDomainParameter("Generator g must lie in (1, p-1)")

        order = self.p - 1
        for q in self.prime_factors_of_order():
            if mod_pow(self.g, order // q, self.p) == 1:
                raise InvalidDomainParameter(
                    f"g does not generate the group (order divides (p-1)/{q})"
                )
        return self

    def to_dict(self):
        """
        Convert the parameters to a dictionary for JSON serialization.

        Returns:
            dict: Dictionary with hex encoded p and g
        """
        return {'p': hex(self.p), 'g': hex(self.g)}

    @classmethod
    def from_dict(cls, data):
        """
        Create parameters from a dictionary.

        Args:
            data (dict): Dictionary representation of the parameters

        Returns:
            DomainParameters: A new instance (not yet validated)
        """
        return cls(int(data['p'], 0), int(data['g'], 0))


def default_parameters():
    """Return the default 256-bit group with its shipped factorization."""
    return DomainParameters(DEFAULT_PRIME, DEFAULT_GENERATOR, DEFAULT_ORDER_FACTORS)


def smallest_primitive_root(p, order_factors):
    """
    Find the smallest generator of the group modulo prime p.

    Args:
        p (int): Prime modulus
        order_factors (iterable): Distinct prime factors of p - 1

    Returns:
        int: The smallest primitive root
    """
    order = p - 1
    for candidate in range(2, p - 1):
        if all(mod_pow(candidate, order // q, p) != 1 for q in order_factors):
            return candidate
    raise InvalidDomainParameter("No primitive root found")


def generate_domain_parameters(key_size=512):
    """
    Generate a fresh group from a safe prime p = 2q + 1.

    The safe prime comes from the DH parameter generator of ``cryptography``;
    because p - 1 = 2q, the factorization is known and the smallest primitive
    root can be found directly.

    Args:
        key_size (int): Size of p in bits (at least 512)

    Returns:
        DomainParameters: Validated parameters
    """
    logger.info("Generating %d-bit safe prime for a new game group", key_size)
    numbers = dh.generate_parameters(generator=2, key_size=key_size).parameter_numbers()
    p = numbers.p
    factors = (2, (p - 1) // 2)
    g = smallest_primitive_root(p, factors)
    return DomainParameters(p, g, factors).validate()
