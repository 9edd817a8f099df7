"""
Modular arithmetic primitives needed by ElGamal.

Only what the protocol needs lives here: modular exponentiation, modular
inverse and uniform sampling from a cryptographically secure source.
"""
import secrets

from poker_crypto.errors import NonInvertibleValue


def mod_pow(base, exponent, modulus):
    """
    Compute base^exponent mod modulus by repeated squaring.

    Args:
        base (int): Base, reduced modulo ``modulus`` first
        exponent (int): Non-negative exponent
        modulus (int): Modulus greater than 1

    Returns:
        int: The result in [0, modulus)
    """
    if modulus <= 1:
        raise ValueError("modulus must be greater than 1")
    if exponent < 0:
        raise ValueError("exponent must be non-negative")

    result = 1
    base %= modulus
    while exponent:
        if exponent & 1:
            result = (result * base) % modulus
        base = (base * base) % modulus
        exponent >>= 1
    return result


def egcd(a, b):
    """Extended Euclid. Returns (g, x, y) with a*x + b*y == g == gcd(a, b)."""
    x0, x1, y0, y1 = 1, 0, 0, 1
    while b:
        q = a // b
        a, b = b, a - q * b
        x0, x1 = x1, x0 - q * x1
        y0, y1 = y1, y0 - q * y1
    return a, x0, y0


def mod_inv(value, modulus):
    """
    Compute the multiplicative inverse of ``value`` modulo ``modulus``.

    Args:
        value (int): Value to invert
        modulus (int): Modulus

    Returns:
        int: x in [1, modulus) with value * x == 1 (mod modulus)

    Raises:
        NonInvertibleValue: If gcd(value, modulus) != 1
    """
    g, x, _ = egcd(value % modulus, modulus)
    if g != 1:
        raise NonInvertibleValue(f"{value} has no inverse modulo the group prime")
    return x % modulus


def random_in_range(minimum, maximum):
    """
    Draw a uniformly random integer in [minimum, maximum] inclusive.

    Uses rejection sampling over ``secrets.randbits`` so the result carries
    no modulo bias.

    Args:
        minimum (int): Lower bound (inclusive)
        maximum (int): Upper bound (inclusive)

    Returns:
        int: The sampled value
    """
    if maximum < minimum:
        raise ValueError("maximum must be >= minimum")

    span = maximum - minimum + 1
    bits = span.bit_length()
    while True:
        candidate = secrets.randbits(bits)
        if candidate < span:
            return minimum + candidate
