"""
ElGamal encryption implementation for the card protocol.

This module provides encryption, partial decryption and rerandomization of
two-component ciphertexts:

    Encryption:    (c1, c2) = (g^y, m * pk^y) mod p
    Decryption:    (c1, c2 * (c1^sk)^-1) mod p
    Rerandomize:   (c1 * g^r, c2 * pk^r) mod p

Decryption only strips one key share from c2 and leaves c1 untouched, so
the shares of every participant can be removed one by one in any order.
"""
from poker_crypto.arithmetic import mod_inv, mod_pow, random_in_range
from poker_crypto.errors import MalformedCiphertext


class Cipher:
    """
    An ElGamal ciphertext (c1, c2).
    """

    __slots__ = ('c1', 'c2')

    def __init__(self, c1, c2):
        self.c1 = c1
        self.c2 = c2

    def __eq__(self, other):
        if not isinstance(other, Cipher):
            return NotImplemented
        return self.c1 == other.c1 and self.c2 == other.c2

    def __hash__(self):
        return hash((self.c1, self.c2))

    def __repr__(self):
        return f"Cipher(c1={hex(self.c1)[:14]}..., c2={hex(self.c2)[:14]}...)"

    def to_dict(self):
        """
        Convert the cipher to a dictionary for JSON serialization.

        Returns:
            dict: Hex encoded components
        """
        return {'c1': hex(self.c1), 'c2': hex(self.c2)}

    @classmethod
    def from_dict(cls, data, params=None):
        """
        Create a cipher from a dictionary received from a counterparty.

        Args:
            data (dict): Dictionary representation of a cipher
            params (DomainParameters, optional): When given, the components
                are range checked against p

        Returns:
            Cipher: A new Cipher instance

        Raises:
            MalformedCiphertext: If the data cannot be parsed or is out of range
        """
        try:
            cipher = cls(int(data['c1'], 16), int(data['c2'], 16))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedCiphertext(f"Unreadable ciphertext: {e}") from e
        if params is not None:
            check_cipher(cipher, params)
        return cipher


def check_cipher(cipher, params):
    """
    Reject ciphertexts whose components lie outside [1, p).

    Zero is never a valid component since both halves are products of
    group elements.
    """
    if not isinstance(cipher, Cipher):
        raise MalformedCiphertext("Expected a Cipher")
    for component in (cipher.c1, cipher.c2):
        if not isinstance(component, int) or not 0 < component < params.p:
            raise MalformedCiphertext("Ciphertext component outside [1, p)")
    return cipher


class ElGamalEngine:
    """
    ElGamal primitives bound to one set of domain parameters.
    """

    def __init__(self, params):
        """
        Initialize the engine.

        Args:
            params (DomainParameters): Group parameters shared by all parties
        """
        self.params = params

    def encrypt(self, plaintext, public_key):
        """
        Encrypt a plaintext under a public key.

        Args:
            plaintext (int): Message in [1, p-1]
            public_key (int): Encryption key (normally the aggregate key)

        Returns:
            Cipher: A fresh ciphertext; repeated calls give distinct results
        """
        p, g = self.params.p, self.params.g
        if not 1 <= plaintext <= p - 1:
            raise ValueError("plaintext must lie in [1, p-1]")

        y = random_in_range(2, p - 2)
        c1 = mod_pow(g, y, p)
        s = mod_pow(public_key, y, p)
        return Cipher(c1, (plaintext * s) % p)

    def decrypt(self, cipher, secret_key):
        """
        Remove one key share from a ciphertext.

        This is a partial decryption: c1 is preserved so further shares can
        still be removed. Once every share behind the encryption key has been
        applied, c2 equals the plaintext.

        Args:
            cipher (Cipher): Ciphertext to decrypt
            secret_key (int): Secret share to remove

        Returns:
            Cipher: New ciphertext with the same c1
        """
        p = self.params.p
        check_cipher(cipher, self.params)
        s = mod_pow(cipher.c1, secret_key, p)
        s_inv = mod_inv(s, p)
        return Cipher(cipher.c1, (cipher.c2 * s_inv) % p)

    def rerandomize(self, cipher, public_key):
        """
        Re-encrypt a ciphertext with fresh randomness, without decrypting.

        Args:
            cipher (Cipher): Ciphertext to refresh
            public_key (int): Key the ciphertext is encrypted under

        Returns:
            Cipher: Unlinkable ciphertext of the same plaintext
        """
        p, g = self.params.p, self.params.g
        check_cipher(cipher, self.params)
        r = random_in_range(2, p - 2)
        return Cipher(
            (cipher.c1 * mod_pow(g, r, p)) % p,
            (cipher.c2 * mod_pow(public_key, r, p)) % p,
        )
