"""RSA Key Generation and Textbook Encryption in an Academic Sense.

Provides concurrent RSA key pair generation (racing worker threads for each prime), probabilistic primality
testing, modular arithmetic helpers and raw, unpadded RSA encryption and decryption. Keys are exchanged as JSON
files holding hex encoded integers.

Typical usage example:

    kp = generate_key_pair(2048, 4)
    c = encrypt(12345, kp.public)
    m = decrypt(c, kp.private)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsagen.arith import extended_gcd
from rsagen.arith import gcd
from rsagen.arith import lcm
from rsagen.arith import mod_inverse
from rsagen.keygen import find_prime
from rsagen.keygen import generate_key_pair
from rsagen.keygen import is_probably_prime
from rsagen.keygen import SeededRandomSource
from rsagen.keygen import SMALL_PRIMES
from rsagen.keygen import SystemRandomSource
from rsagen.rsa import decrypt
from rsagen.rsa import encrypt
from rsagen.rsa import KeyPair
from rsagen.rsa import PrivateKey
from rsagen.rsa import PublicKey

__version__ = "0.1.0"
__all__ = [
    "KeyPair",
    "PrivateKey",
    "PublicKey",
    "SMALL_PRIMES",
    "SeededRandomSource",
    "SystemRandomSource",
    "decrypt",
    "encrypt",
    "extended_gcd",
    "find_prime",
    "gcd",
    "generate_key_pair",
    "is_probably_prime",
    "lcm",
    "mod_inverse",
]
