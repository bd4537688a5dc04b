"""Unit tests for the token issuer and the password/token helpers."""

from datetime import timedelta

import jwt
import pytest

from conftest import FakeClock
from utils.security import fingerprint, generate_otp, hash_password, verify_password
from utils.tokens import ACCESS, REFRESH, InvalidSignature, TokenExpired, TokenIssuer

ACCESS_SECRET = "unit-access-secret-at-least-32-bytes!!"
REFRESH_SECRET = "unit-refresh-secret-at-least-32-bytes!"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer(clock):
    return TokenIssuer(ACCESS_SECRET, REFRESH_SECRET, issuer="auth-api", clock=clock)


class TestTokenIssuer:
    def test_access_token_round_trip(self, issuer):
        token = issuer.issue_access_token({"sub": "user-1", "role": "customer"}, timedelta(minutes=15))
        claims = issuer.verify(token)

        assert claims["sub"] == "user-1"
        assert claims["role"] == "customer"
        assert claims["type"] == ACCESS
        assert claims["iss"] == "auth-api"
        assert claims["exp"] - claims["iat"] == 15 * 60
        assert claims["jti"]

    def test_each_token_gets_its_own_jti(self, issuer):
        first = issuer.issue_access_token({"sub": "user-1"}, timedelta(minutes=1))
        second = issuer.issue_access_token({"sub": "user-1"}, timedelta(minutes=1))
        assert first != second

    def test_sub_is_required(self, issuer):
        with pytest.raises(ValueError):
            issuer.issue_access_token({"role": "customer"}, timedelta(minutes=1))

    def test_expired_token(self, issuer, clock):
        token = issuer.issue_access_token({"sub": "user-1"}, timedelta(seconds=30))
        clock.now += 30
        with pytest.raises(TokenExpired):
            issuer.verify(token)

    def test_token_valid_until_expiry(self, issuer, clock):
        token = issuer.issue_access_token({"sub": "user-1"}, timedelta(seconds=30))
        clock.now += 29
        assert issuer.verify(token)["sub"] == "user-1"

    def test_tampered_token_is_rejected(self, issuer):
        token = issuer.issue_access_token({"sub": "user-1"}, timedelta(minutes=1))
        other = issuer.issue_access_token({"sub": "user-2"}, timedelta(minutes=1))
        head, _, signature = token.split(".")
        # user-2's claims under user-1's signature
        tampered = ".".join([head, other.split(".")[1], signature])
        with pytest.raises(InvalidSignature):
            issuer.verify(tampered)

    def test_garbage_is_rejected(self, issuer):
        with pytest.raises(InvalidSignature):
            issuer.verify("not-a-jwt")

    def test_refresh_token_is_not_an_access_token(self, issuer):
        refresh = issuer.issue_refresh_token({"sub": "user-1"}, timedelta(days=7))
        with pytest.raises(InvalidSignature):
            issuer.verify(refresh, expected_type=ACCESS)
        assert issuer.verify(refresh, expected_type=REFRESH)["type"] == REFRESH

    def test_type_claim_is_checked_even_with_a_shared_secret(self, clock):
        shared = TokenIssuer(ACCESS_SECRET, clock=clock)
        refresh = shared.issue_refresh_token({"sub": "user-1"}, timedelta(days=7))
        with pytest.raises(InvalidSignature):
            shared.verify(refresh, expected_type=ACCESS)

    def test_foreign_issuer_is_rejected(self, issuer, clock):
        token = jwt.encode(
            {"sub": "user-1", "iss": "someone-else", "iat": clock.now, "exp": clock.now + 60,
             "jti": "x", "type": ACCESS},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidSignature):
            issuer.verify(token)

    def test_from_config(self):
        config = {
            "JWT_ACCESS_SECRET": ACCESS_SECRET,
            "JWT_REFRESH_SECRET": REFRESH_SECRET,
            "JWT_ALGORITHM": "HS256",
            "JWT_ISSUER": "configured",
        }
        issuer = TokenIssuer.from_config(config)
        token = issuer.issue_access_token({"sub": "u"}, timedelta(minutes=1))
        assert issuer.verify(token)["iss"] == "configured"


class TestSecurityHelpers:
    def test_password_hash_verifies(self):
        password_hash = hash_password("Passw0rd")
        assert password_hash != "Passw0rd"
        assert verify_password("Passw0rd", password_hash)
        assert not verify_password("wrong", password_hash)

    def test_missing_hash_never_verifies(self):
        assert verify_password("Passw0rd", None) is False

    def test_garbage_hash_never_verifies(self):
        assert verify_password("Passw0rd", "not-an-argon2-hash") is False

    def test_fingerprint_is_stable_and_opaque(self):
        assert fingerprint("abc") == fingerprint("abc")
        assert fingerprint("abc") != "abc"
        assert len(fingerprint("abc")) == 64

    def test_otp_is_six_digits(self):
        for _ in range(50):
            code = generate_otp()
            assert len(code) == 6 and code.isdigit()
