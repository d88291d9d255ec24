"""
Probable Prime Testing

Miller-Rabin with random bases from the secrets module, used for DSA
domain parameters that OpenSSL does not generate natively.
"""

import secrets

ROUNDS = 64

SMALL_PRIMES = tuple(
    n for n in range(3, 2000, 2)
    if all(n % d for d in range(3, int(n ** 0.5) + 1, 2))
)


def _witness(n: int, d: int, r: int) -> bool:
    """True if a random base proves n composite."""
    a = secrets.randbelow(n - 3) + 2  # [2, n - 2]
    x = pow(a, d, n)
    if x in (1, n - 1):
        return False

    for _ in range(r - 1):
        x = x * x % n
        if x == n - 1:
            return False
        if x == 1:
            return True

    return True


# The probability of a false positive is at most 4^-rounds
def is_probable_prime(n: int, rounds: int = ROUNDS) -> bool:
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False

    for p in SMALL_PRIMES:
        if n % p == 0:
            return n == p

    d, r = n - 1, 0
    while d % 2 == 0:
        d //= 2
        r += 1

    return not any(_witness(n, d, r) for _ in range(rounds))


def random_odd(bits: int) -> int:
    """Random odd integer with exactly `bits` bits."""
    return secrets.randbits(bits) | (1 << (bits - 1)) | 1
