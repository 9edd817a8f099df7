"""
Crypto module for the mental poker card protocol.

This module contains implementations of:
- Modular arithmetic primitives used by ElGamal
- Domain parameters and key management (Diffie-Hellman shared keys,
  aggregate public key)
- ElGamal encryption, partial decryption and rerandomization
- The sequential shuffle and re-encryption pipeline
- Individual and collective card revelation
"""
