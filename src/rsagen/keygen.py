"""Core Key Generation Utility, mainly focusing on the generation of random large primes.

This module is responsible for generating RSA key pairs. Primes are found by racing a pool of worker threads, each
drawing random odd candidates of the target width and putting them through trial division followed by the
Miller-Rabin test. Two such races (one for `p`, one for `q`) run side by side.

Typical usage example:

    is_probably_prime(9973)
    p = find_prime(1024, 4)
    kp = generate_key_pair(2048, 4)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from concurrent import futures
import logging
import random
import secrets
import threading
from typing import Protocol

from rsagen import arith
from rsagen.rsa import KeyPair
from rsagen.rsa import PrivateKey
from rsagen.rsa import PublicKey

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_EXPONENT: int = 65537
DEFAULT_WORKERS: int = 4
# p, q >= 2**17 keeps lambda above DEFAULT_PUBLIC_EXPONENT.
MIN_KEY_BITS: int = 36
SMALL_PRIME_LIMIT: int = 10000
MR_ROUNDS_SMALL: int = 64
MR_ROUNDS_LARGE: int = 128
MR_ROUNDS_THRESHOLD: int = 2048


class RandomSource(Protocol):
    """Randomness provider consumed by the prime search and key generation."""

    def randrange(self, lo: int, hi: int) -> int:
        """Uniformly random integer in `[lo, hi)`."""

    def odd_candidate(self, bits: int) -> int:
        """Random odd integer of exactly `bits` bits."""

    def spawn(self) -> "RandomSource":
        """Independent source for use by a single worker."""


class SystemRandomSource:
    """Cryptographically secure source backed by `secrets`."""

    def randrange(self, lo: int, hi: int) -> int:
        if hi <= lo:
            raise ValueError(f"Empty range [{lo}, {hi})")
        return lo + secrets.randbelow(hi - lo)

    def odd_candidate(self, bits: int) -> int:
        return secrets.randbits(bits) | (1 << (bits - 1)) | 1

    def spawn(self) -> "SystemRandomSource":
        return SystemRandomSource()


class SeededRandomSource:
    """Reproducible source backed by `random.Random`.

    Meant for tests and demonstrations only. Keys generated from it are predictable to anyone knowing the seed.

    Attributes:
        seed: The seed the source was created with.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def randrange(self, lo: int, hi: int) -> int:
        return self._rng.randrange(lo, hi)

    def odd_candidate(self, bits: int) -> int:
        return self._rng.getrandbits(bits) | (1 << (bits - 1)) | 1

    def spawn(self) -> "SeededRandomSource":
        return SeededRandomSource(self._rng.getrandbits(64))


def _sieve(n: int = SMALL_PRIME_LIMIT) -> list[int]:
    """Implements the Sieve of Eratosthenes.

    Uses the textbook Sieve of Eratosthenes to generate a set of primes up to `n`.
    Includes memory space optimization and sieving until root.

    Args:
        n: The number up to which to generate primes. Defaults to `SMALL_PRIME_LIMIT`. Must be >= 0.

    Returns:
        A list of primes up to `n`.
    """
    if n < 2:
        return []
    i_size = (n - 1) // 2
    candidate: list[bool] = [True] * i_size
    for i in range(int(n**0.5) // 2):
        if candidate[i]:
            r = 2 * i + 3
            for j in range((r * r - 3) // 2, i_size, r):
                candidate[j] = False
    return [2] + [(no * 2 + 3) for no, ele in enumerate(candidate) if ele]


SMALL_PRIMES: tuple[int, ...] = tuple(_sieve(SMALL_PRIME_LIMIT))


def _miller_rabin(w: int, iters: int, rng: RandomSource) -> bool:
    """Perform Miller-Rabin primality test.

    Args:
        w: Odd integer to be tested. Must be at least 5.
        iters: Number of Miller-Rabin iterations to perform.
        rng: Source of the witnesses.

    Returns:
        True if `w` is probably prime, False otherwise.
    """
    tw = w - 1
    a = (tw & -tw).bit_length() - 1
    m = tw >> a
    for _ in range(iters):
        b = rng.randrange(2, w - 1)
        z = pow(b, m, w)
        if z == 1 or z == tw:
            continue
        for _ in range(1, a):
            z = pow(z, 2, w)
            if z == tw:
                break
            if z == 1:
                return False
        else:
            return False
    return True


def is_probably_prime(candidate: int,
                      small_primes: tuple[int, ...] = SMALL_PRIMES,
                      rng: RandomSource | None = None,
                      rounds: int | None = None) -> bool:
    """Performs a composite Primality test, using trial division before a Miller-Rabin test.

    Trial division against `small_primes` cheaply rejects most composites. Survivors go through Miller-Rabin, with
    64 rounds for candidates of up to 2048 bits and 128 rounds above that.

    Args:
        candidate: The candidate prime to test.
        small_primes: Ascending primes used for trial division. Defaults to `SMALL_PRIMES`.
        rng: Source of the Miller-Rabin witnesses. Defaults to a fresh `SystemRandomSource`.
        rounds: Number of Miller-Rabin iterations to perform. Overrides the size based default.

    Returns:
        True if `candidate` is probably prime, False otherwise.
    """
    if candidate <= 1:
        return False
    if candidate % 2 == 0:
        return candidate == 2
    if candidate == 3:
        return True
    for p in small_primes:
        if candidate % p == 0:
            return candidate == p
    if rounds is None:
        rounds = MR_ROUNDS_SMALL if candidate.bit_length() <= MR_ROUNDS_THRESHOLD else MR_ROUNDS_LARGE
    return _miller_rabin(candidate, rounds, rng or SystemRandomSource())


def generate_prime(bit_width: int, rng: RandomSource, stop: threading.Event | None = None) -> int | None:
    """Draw random odd candidates of exactly `bit_width` bits until one is probably prime.

    Args:
        bit_width: Width of the prime in bits. Must be >= 2.
        rng: Source of candidates and witnesses. Should not be shared with other threads.
        stop: Optional token. Once set, the search gives up at the next candidate.

    Returns:
        A probable prime with its top bit set, or None if `stop` was set first.
    """
    while stop is None or not stop.is_set():
        candidate = rng.odd_candidate(bit_width)
        if is_probably_prime(candidate, rng=rng):
            return candidate
    return None


def find_prime(bit_width: int, worker_count: int, rng: RandomSource | None = None) -> int:
    """Race `worker_count` threads for a prime of `bit_width` bits and return the first one found.

    Every worker gets its own source spawned from `rng`. Losers are not waited for: they see the stop token at their
    next candidate and leave, and anything they return is never read.

    Args:
        bit_width: Width of the prime in bits. Must be >= 2.
        worker_count: Number of racing workers. Must be >= 1.
        rng: Parent randomness source. Defaults to a `SystemRandomSource`.

    Returns:
        A probable prime in `[2**(bit_width-1), 2**bit_width)`.

    Raises:
        ValueError: If `bit_width` or `worker_count` are out of range.
        Exception: Whatever the first finished worker raised, e.g. a failing randomness source.
    """
    if bit_width < 2:
        raise ValueError("bit_width must be >= 2")
    if worker_count < 1:
        raise ValueError("worker_count must be >= 1")
    rng = rng or SystemRandomSource()
    stop = threading.Event()
    pool = futures.ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix=f"prime{bit_width}")
    try:
        tasks = {pool.submit(generate_prime, bit_width, rng.spawn(), stop): no for no in range(worker_count)}
        logger.debug("Started %d workers for a %d bit prime.", worker_count, bit_width)
        done, _ = futures.wait(tasks, return_when=futures.FIRST_COMPLETED)
        winner = next(iter(done))
        logger.debug("Worker %d finished first.", tasks[winner])
        return winner.result()
    finally:
        stop.set()
        pool.shutdown(wait=False, cancel_futures=True)


def select_public_exponent(lam: int, rng: RandomSource | None = None) -> int:
    """Pick the public exponent for a given Carmichael-like exponent.

    Starts from 65537 and falls back on random values in `[3, 65537)` until one is coprime with `lam`. Any coprime
    value is accepted, not just Fermat primes.

    Args:
        lam: lcm(p-1, q-1) of the key. Must be > 1.
        rng: Source of fallback candidates. Defaults to a `SystemRandomSource`.

    Returns:
        An exponent coprime with `lam`.

    Raises:
        ValueError: If `lam` < 2, as no valid exponent exists.
    """
    if lam < 2:
        raise ValueError("lam must be >= 2")
    e = DEFAULT_PUBLIC_EXPONENT
    if arith.gcd(e, lam) == 1:
        return e
    logger.warning("%d is not coprime with lambda, falling back on a random public exponent.", e)
    rng = rng or SystemRandomSource()
    while arith.gcd(e, lam) != 1:
        e = rng.randrange(3, DEFAULT_PUBLIC_EXPONENT)
    logger.debug("Selected fallback public exponent %d.", e)
    return e


def generate_key_pair(bit_width: int, worker_count: int = DEFAULT_WORKERS, rng: RandomSource | None = None) -> KeyPair:
    """Generates an RSA key pair.

    Finds two primes of half of `bit_width` concurrently, then derives the modulus, lambda, the public exponent and
    the private exponent.

    Args:
        bit_width: Key size in bits. Must be >= `MIN_KEY_BITS`.
        worker_count: Number of workers per prime search. Defaults to `DEFAULT_WORKERS`.
        rng: Parent randomness source. Defaults to a `SystemRandomSource`.

    Returns:
        The generated key pair.

    Raises:
        ValueError: If `bit_width` or `worker_count` are out of range.
        RuntimeError: If the derived values break an RSA invariant.
    """
    if bit_width < MIN_KEY_BITS:
        raise ValueError(f"bit_width must be >= {MIN_KEY_BITS}")
    if worker_count < 1:
        raise ValueError("worker_count must be >= 1")
    rng = rng or SystemRandomSource()
    half = bit_width // 2
    rng_p, rng_q = rng.spawn(), rng.spawn()
    with futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="keygen") as pool:
        fp = pool.submit(find_prime, half, worker_count, rng_p)
        fq = pool.submit(find_prime, half, worker_count, rng_q)
        p, q = fp.result(), fq.result()
    while p == q:  # (Un)Likely story.
        logger.warning("Prime collision at %d bits, searching q again.", half)
        q = find_prime(half, worker_count, rng_q)
    n = p * q
    lam = arith.lcm(p - 1, q - 1)
    if lam < 2:
        raise RuntimeError(f"Degenerate lambda {lam} for the generated primes.")
    e = select_public_exponent(lam, rng)
    if not 1 < e < lam:
        raise RuntimeError(f"Public exponent {e} outside of (1, {lam}).")
    d = arith.mod_inverse(e, lam)
    if (e * d) % lam != 1:
        raise RuntimeError("Private exponent does not invert the public exponent.")
    logger.debug("Generated a %d bit modulus.", n.bit_length())
    return KeyPair(PublicKey(e, n), PrivateKey(d, n))
