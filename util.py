
import logging
import random

import gmpy2

logger = logging.getLogger(__name__)

MILLER_RABIN_ROUNDS = 64

_USE_MOD_FROM_GMP_SIZE = (1 << (8*2))

_randfunc = random.SystemRandom()


def powmod(a, b, c):

    if a == 1:
        return 1
    if max(a, b, c) < _USE_MOD_FROM_GMP_SIZE:
        return pow(int(a), int(b), int(c))
    else:
        return int(gmpy2.powmod(a, b, c))


def invert(a, b):
    """Modular inverse of `a` mod `b`; raises ZeroDivisionError when none exists."""
    return int(gmpy2.invert(a, b))


def is_probable_prime(candidate, rounds=MILLER_RABIN_ROUNDS):
    # each Miller-Rabin round lets a composite through with probability <= 1/4
    if candidate < 2:
        return False
    return bool(gmpy2.is_prime(candidate, rounds))


def randrange(start, stop):
    """Cryptographically random integer in [start, stop)."""
    return _randfunc.randrange(start, stop)


def getprimeover(N, max_attempts=None):
    """Return a random prime of exactly N bits, or None after `max_attempts` misses."""
    if N < 2:
        raise ValueError('Prime bit length must be at least 2, got %d' % N)
    if max_attempts is None:
        max_attempts = 100 * N

    for attempt in range(1, max_attempts + 1):
        r = gmpy2.mpz(_randfunc.getrandbits(N))
        r = gmpy2.bit_set(r, N - 1)
        r = gmpy2.bit_set(r, 0)
        if is_probable_prime(r):
            logger.debug('found %d-bit prime after %d candidates', N, attempt)
            return int(r)

    logger.debug('no %d-bit prime in %d candidates', N, max_attempts)
    return None
