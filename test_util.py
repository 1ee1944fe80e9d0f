import pytest
from gmpy2 import mpz

import util


@pytest.mark.parametrize("bits", [2, 8, 64, 170, 512])
def test_getprimeover_exact_bit_length(bits):
    p = util.getprimeover(bits)
    assert p.bit_length() == bits
    assert util.is_probable_prime(p)
    assert isinstance(p, int)


def test_getprimeover_gives_up(monkeypatch):
    monkeypatch.setattr(util, 'is_probable_prime', lambda candidate: False)
    assert util.getprimeover(64, max_attempts=10) is None


def test_getprimeover_rejects_tiny_lengths():
    with pytest.raises(ValueError):
        util.getprimeover(1)


def test_is_probable_prime():
    assert util.is_probable_prime(2003)
    assert util.is_probable_prime(2351)
    assert not util.is_probable_prime(2003 * 2351)
    assert not util.is_probable_prime(1)
    assert not util.is_probable_prime(0)
    # Carmichael number
    assert not util.is_probable_prime(561)


def test_powmod_matches_builtin():
    assert util.powmod(3, 200, 1000003) == pow(3, 200, 1000003)
    assert util.powmod(5, 3, 13) == pow(5, 3, 13)
    assert util.powmod(1, 12345, 97) == 1
    assert isinstance(util.powmod(mpz(3), 200, 1000003), int)


def test_invert():
    assert util.invert(3, 2003) * 3 % 2003 == 1
    with pytest.raises(ZeroDivisionError):
        util.invert(2003, 2003 * 2)


def test_randrange_bounds():
    for _ in range(200):
        assert 2 <= util.randrange(2, 10) < 10
