#!/usr/bin/env python3
# Okamoto-Uchiyama additively homomorphic cryptosystem over n = p^2 * q.

import enum
import hashlib
import logging
from dataclasses import dataclass, field

import numpy
from gmpy2 import mpz

from util import getprimeover, invert, powmod, randrange

logger = logging.getLogger(__name__)


class KeySize(enum.IntEnum):
    """Supported bit lengths of the public modulus n."""
    BITS_512 = 512
    BITS_1024 = 1024
    BITS_2048 = 2048
    BITS_4096 = 4096


DEFAULT_KEYSIZE = KeySize.BITS_1024
GENERATOR_ATTEMPTS = 64


class OkamotoUchiyamaError(Exception):
    """Base class for every error raised by this module."""


class GenerationExhausted(OkamotoUchiyamaError, RuntimeError):
    """Prime or generator search gave up after its bounded number of attempts."""


class InvalidKey(OkamotoUchiyamaError, ValueError):
    """The private key is inconsistent with its public key."""


class InvalidCiphertext(OkamotoUchiyamaError, ValueError):
    """A ciphertext lies outside [0, n)."""


class EmptyInput(OkamotoUchiyamaError, ValueError):
    """No ciphertexts were given to combine."""


class MessageTooLarge(OkamotoUchiyamaError, ValueError):
    """A plaintext lies outside [0, n)."""


def _is_integer(value):
    if isinstance(value, (bool, numpy.bool_)):
        return False
    return isinstance(value, (int, numpy.integer)) or isinstance(value, type(mpz(1)))


def generate_prime(bit_length, max_attempts=None):
    prime = getprimeover(bit_length, max_attempts)
    if prime is None:
        raise GenerationExhausted('no %d-bit prime found' % bit_length)
    return prime


def _find_generator(n, p, psquare, attempts=GENERATOR_ATTEMPTS):
    """Search [2, n-1] for g with g^(p-1) mod p^2 != 1.

    Returns ``(g, gd)`` where ``gd = g^(p-1) mod p^2``, or None if every
    attempt failed. ``gd`` is congruent to 1 mod p for any g coprime to p, so
    requiring ``gd != 1`` makes L(gd) invertible mod p.
    """
    for attempt in range(1, attempts + 1):
        g = randrange(2, n)
        gd = powmod(g, p - 1, psquare)
        if gd % p == 1 and gd != 1:
            logger.debug('generator accepted after %d attempts', attempt)
            return g, gd
    return None


def generate_key_pair(key_size=DEFAULT_KEYSIZE):
    """Generate an Okamoto-Uchiyama key pair.

    p and q each get `key_size // 3` bits so that n = p^2 * q has roughly
    `key_size` bits, a few bits short at most: a 512-bit request yields
    170-bit primes and a modulus of 508 to 510 bits. Plaintexts must stay
    below p, so the usable message space is about `key_size // 3` bits.

    Returns:
      tuple: (:class:`OkamotoUchiyamaPrivateKey`, :class:`OkamotoUchiyamaPublicKey`)
    """
    try:
        key_size = KeySize(key_size)
    except ValueError:
        raise ValueError('Unsupported key size: %r (expected one of %s)' %
                         (key_size, [k.value for k in KeySize]))

    prime_length = key_size // 3
    p = generate_prime(prime_length)
    q = p
    while q == p:
        q = generate_prime(prime_length)

    psquare = p * p
    n = psquare * q

    found = _find_generator(n, p, psquare)
    if found is None:
        raise GenerationExhausted('no generator found in %d attempts' % GENERATOR_ATTEMPTS)
    g, gd = found
    h = powmod(g, n, n)

    public_key = OkamotoUchiyamaPublicKey(n, g, h)
    private_key = OkamotoUchiyamaPrivateKey(public_key, p, q)
    logger.info('generated %d-bit Okamoto-Uchiyama key pair (requested %d)',
                n.bit_length(), int(key_size))
    return private_key, public_key


@dataclass(frozen=True)
class OkamotoUchiyamaPublicKey:
    """Public key (n, g, h) where n = p^2 * q and h = g^n mod n.

    Attributes:
      max_int (int): advisory upper bound for plaintexts, valid only for keys
        made by :func:`generate_key_pair`, where p and q have equal length.
        Keys built from other primes may have p shorter than a third of n;
        use :attr:`OkamotoUchiyamaPrivateKey.max_int` for an exact bound.
    """
    n: int
    g: int
    h: int
    max_int: int = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        for name in ('n', 'g', 'h'):
            value = getattr(self, name)
            if not _is_integer(value):
                raise TypeError('Expected int type %s but got: %s' % (name, type(value)))
            object.__setattr__(self, name, int(value))
        object.__setattr__(self, 'max_int', (1 << max(self.n.bit_length() // 3 - 1, 0)) - 1)

    def __repr__(self):
        publicKeyHash = hashlib.sha1(('%x:%x:%x' % (self.n, self.g, self.h)).encode()).hexdigest()
        return "<OkamotoUchiyamaPublicKey {}>".format(publicKeyHash[:10])

    def get_random_lt_n(self):
        """Return a cryptographically random number in [1, n)."""
        return randrange(1, self.n)

    def encrypt(self, plaintext, r_value=None):
        """Encrypt `plaintext` as c = g^m * h^r mod n.

        The plaintext must be below the private prime p. This key cannot check
        that bound: values in [p, n) decrypt to ``plaintext mod p``.
        """
        if not _is_integer(plaintext):
            raise TypeError('Expected int type plaintext but got: %s' %
                            type(plaintext))
        plaintext = int(plaintext)
        if plaintext < 0 or plaintext >= self.n:
            raise MessageTooLarge('plaintext out of range [0, n): %d' % plaintext)

        r = self.get_random_lt_n() if r_value is None else int(r_value)
        nude_ciphertext = powmod(self.g, plaintext, self.n)
        obfuscator = powmod(self.h, r, self.n)
        return (nude_ciphertext * obfuscator) % self.n

    def check_ciphertext(self, ciphertext):
        if not _is_integer(ciphertext):
            raise TypeError('Expected ciphertext to be an int, not: %s' % type(ciphertext))
        ciphertext = int(ciphertext)
        if not 0 <= ciphertext < self.n:
            raise InvalidCiphertext('ciphertext out of range [0, n)')
        return ciphertext

    def add(self, c1, c2):
        """Ciphertext of the sum of the plaintexts behind `c1` and `c2`."""
        return self.check_ciphertext(c1) * self.check_ciphertext(c2) % self.n

    def add_many(self, ciphertexts):
        ciphertexts = list(ciphertexts)
        if not ciphertexts:
            raise EmptyInput('at least one ciphertext is required')
        result = 1
        for c in ciphertexts:
            result = result * self.check_ciphertext(c) % self.n
        return result

    def add_plain(self, ciphertext, plaintext):
        """Add a known plaintext to an encrypted one without re-randomizing."""
        return self.check_ciphertext(ciphertext) * self.encrypt(plaintext, r_value=0) % self.n

    def mul_scalar(self, ciphertext, scalar):
        """Multiply the hidden plaintext by a non-negative public scalar."""
        if not _is_integer(scalar):
            raise TypeError('Expected int type scalar but got: %s' % type(scalar))
        if scalar < 0:
            raise ValueError('Scalar out of bounds: %i' % scalar)
        return powmod(self.check_ciphertext(ciphertext), int(scalar), self.n)


@dataclass(frozen=True)
class OkamotoUchiyamaPrivateKey:
    """Private key holding the public key and the secret primes p and q.

    ``p * p * q == public_key.n`` is not checked here; a key that violates it
    is rejected with :class:`InvalidKey` on the first decryption.

    Attributes:
      max_int (int): largest plaintext that is safe under this key whatever
        the sizes of p and q, one bit shorter than p.
    """
    public_key: OkamotoUchiyamaPublicKey
    p: int
    q: int
    psquare: int = field(init=False, repr=False, compare=False)
    gd: int = field(init=False, repr=False, compare=False)
    max_int: int = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.public_key, OkamotoUchiyamaPublicKey):
            raise TypeError('public_key should be an OkamotoUchiyamaPublicKey')
        for name in ('p', 'q'):
            value = getattr(self, name)
            if not _is_integer(value):
                raise TypeError('Expected int type %s but got: %s' % (name, type(value)))
            object.__setattr__(self, name, int(value))
        if self.p < 2:
            raise InvalidKey('p must be a prime, got %d' % self.p)
        psquare = self.p * self.p
        object.__setattr__(self, 'psquare', psquare)
        object.__setattr__(self, 'gd', powmod(self.public_key.g, self.p - 1, psquare))
        object.__setattr__(self, 'max_int', (1 << (self.p.bit_length() - 1)) - 1)

    def __repr__(self):
        pub_repr = repr(self.public_key)
        return "<OkamotoUchiyamaPrivateKey for {}>".format(pub_repr)

    def l_function(self, x):
        """ L(x) = (x-1)/p, exact for x = 1 mod p"""
        return (x - 1) // self.p

    def decrypt(self, ciphertext):
        if self.psquare * self.q != self.public_key.n:
            raise InvalidKey('given public key does not match the given p and q.')
        if self.gd % self.p != 1:
            raise InvalidKey('g^(p-1) is not 1 mod p; p is not a prime factor of n')
        ciphertext = self.public_key.check_ciphertext(ciphertext)

        a = powmod(ciphertext, self.p - 1, self.psquare)
        if a % self.p != 1:
            # only happens when p divides the ciphertext
            raise InvalidCiphertext('ciphertext is not invertible mod p')
        a = self.l_function(a)
        b = self.l_function(self.gd)
        try:
            b_inverse = invert(b, self.p)
        except ZeroDivisionError:
            raise InvalidKey('L(g^(p-1) mod p^2) is not invertible mod p')
        return a * b_inverse % self.p


class EncryptedNumber(object):
    """A ciphertext bound to the public key it was produced under.

    Supports ``+`` with other encrypted numbers and with plaintext ints, ``*``
    by a non-negative int and ``sum()``.
    """

    def __init__(self, public_key, ciphertext):
        if not isinstance(public_key, OkamotoUchiyamaPublicKey):
            raise TypeError('public_key should be an OkamotoUchiyamaPublicKey')
        if isinstance(ciphertext, EncryptedNumber):
            raise TypeError('ciphertext should be an integer')
        self.public_key = public_key
        self.ciphertext = public_key.check_ciphertext(ciphertext)

    @classmethod
    def encrypt(cls, public_key, plaintext):
        return cls(public_key, public_key.encrypt(plaintext))

    def decrypt(self, private_key):
        if private_key.public_key != self.public_key:
            raise ValueError('encrypted_number was encrypted against a different key!')
        return private_key.decrypt(self.ciphertext)

    def __repr__(self):
        return "<EncryptedNumber under {!r}>".format(self.public_key)

    def __eq__(self, other):
        if not isinstance(other, EncryptedNumber):
            return NotImplemented
        return self.public_key == other.public_key and self.ciphertext == other.ciphertext

    def __hash__(self):
        return hash((self.public_key, self.ciphertext))

    def __add__(self, other):
        if isinstance(other, EncryptedNumber):
            if self.public_key != other.public_key:
                raise ValueError("Mismatched public keys for addition")
            return EncryptedNumber(self.public_key,
                                   self.public_key.add(self.ciphertext, other.ciphertext))
        if _is_integer(other):
            return EncryptedNumber(self.public_key,
                                   self.public_key.add_plain(self.ciphertext, other))
        return NotImplemented

    def __radd__(self, other):
        return self.__add__(other)

    def __mul__(self, other):
        """Multiply by an int."""
        if isinstance(other, EncryptedNumber):
            raise TypeError('Okamoto-Uchiyama is only additively homomorphic')
        if not _is_integer(other):
            return NotImplemented
        return EncryptedNumber(self.public_key,
                               self.public_key.mul_scalar(self.ciphertext, other))

    def __rmul__(self, other):
        return self.__mul__(other)


def encrypt(plaintext, public_key):
    return public_key.encrypt(plaintext)


def decrypt(ciphertext, private_key):
    return private_key.decrypt(ciphertext)


def homomorphic_add_two(c1, c2, public_key):
    return public_key.add(c1, c2)


def homomorphic_add_many(ciphertexts, public_key):
    return public_key.add_many(ciphertexts)


def encrypt_vector(public_key, values):
    """Encrypt every integer of a list or numpy array."""
    return [public_key.encrypt(v) for v in numpy.asarray(values, dtype=object).ravel()]


def decrypt_vector(private_key, ciphertexts):
    return [private_key.decrypt(c) for c in ciphertexts]
