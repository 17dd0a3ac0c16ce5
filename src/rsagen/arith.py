"""Modular arithmetic helpers used by key generation.

Covers the greatest common divisor, least common multiple and the Extended Euclidean Algorithm, the latter being
the route by which the private exponent is obtained as a modular inverse.

Typical usage example:

    lam = lcm(p - 1, q - 1)
    d = mod_inverse(65537, lam)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0


def gcd(a: int, b: int) -> int:
    """Greatest common divisor by repeated remainder.

    Args:
        a: The first natural number.
        b: The second natural number.

    Returns:
        The largest integer dividing both `a` and `b`. `gcd(a, 0)` is `a`.
    """
    while b != 0:
        a, b = b, a % b
    return a


def lcm(a: int, b: int) -> int:
    """Least common multiple, as `a * b / gcd(a, b)`.

    Args:
        a: The first natural number.
        b: The second natural number.

    Returns:
        The least common multiple of `a` and `b`.

    Raises:
        ValueError: If both `a` and `b` are zero.
    """
    if a == 0 and b == 0:
        raise ValueError("lcm(0, 0) is undefined")
    return (a * b) // gcd(a, b)


def extended_gcd(a: int, b: int) -> tuple[int, int, int]:
    """Implements the Extended Euclidean Algorithm.

    Such that a*x + b*y = g = gcd(a, b). Iterative, so stack usage does not grow with the inputs.

    Args:
        a: The first natural number.
        b: The second natural number.

    Returns:
        Greatest common divisor of two integers.
        As well as the Bezout coefficients.
    """
    r0, r1 = a, b
    x0, x1, y0, y1 = 1, 0, 0, 1
    while r1 != 0:
        q, r = divmod(r0, r1)
        r0, r1 = r1, r
        x0, x1 = x1, x0 - q * x1
        y0, y1 = y1, y0 - q * y1
    return r0, x0, y0


def mod_inverse(a: int, m: int) -> int:
    """Inverse of `a` modulo `m`, normalized into `[0, m)`.

    Args:
        a: The value to invert.
        m: The modulus.

    Returns:
        The `x` in `[0, m)` such that `a*x % m == 1`.

    Raises:
        ValueError: If `m` is not positive or `a` has no inverse modulo `m`.
    """
    if m <= 0:
        raise ValueError("Modulus must be positive.")
    g, x, _ = extended_gcd(a, m)
    if g != 1:
        raise ValueError(f"{a} has no inverse modulo {m}.")
    # x may be negative.
    return (x % m + m) % m
