"""Shared pytest fixtures for the Okamoto-Uchiyama test suite."""

import pytest

import okamoto_uchiyama
from okamoto_uchiyama import OkamotoUchiyamaPrivateKey, OkamotoUchiyamaPublicKey


@pytest.fixture(scope="session")
def keypair():
    """A freshly generated 512-bit (private, public) key pair."""
    return okamoto_uchiyama.generate_key_pair(okamoto_uchiyama.KeySize.BITS_512)


@pytest.fixture()
def small_keys():
    """Tiny fixed parameters with p=2003, q=2351. Not secure."""
    pub = OkamotoUchiyamaPublicKey(n=9432233159, g=8083706871, h=7988052977)
    priv = OkamotoUchiyamaPrivateKey(pub, 2003, 2351)
    return priv, pub
