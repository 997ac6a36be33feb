"""
Tests for the bcrypt password hasher.
"""

import bcrypt
import pytest

from vehicle_fees.passwords import PasswordHasher


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


class TestPasswordHasher:

    def test_digest_is_bcrypt_with_configured_cost(self, hasher):
        digest = hasher.hash('secret')

        assert digest.startswith('$2b$04$')
        assert hasher.verify('secret', digest)
        assert not hasher.verify('Secret', digest)

    def test_salts_differ_between_hashes(self, hasher):
        assert hasher.hash('secret') != hasher.hash('secret')

    def test_verifies_digest_written_elsewhere(self, hasher):
        digest = bcrypt.hashpw('pässword'.encode('utf-8'), bcrypt.gensalt(rounds=5)).decode('ascii')

        assert hasher.verify('pässword', digest)

    @pytest.mark.parametrize('digest', ['', 'not-a-digest', 'pbkdf2_sha256$1000$00$00', '$2b$04$short'])
    def test_malformed_digest_never_matches(self, hasher, digest):
        assert hasher.verify('secret', digest) is False

    def test_cost_factor_bounds(self):
        with pytest.raises(ValueError):
            PasswordHasher(rounds=3)
        with pytest.raises(ValueError):
            PasswordHasher(rounds=32)
