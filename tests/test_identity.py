"""Tests for the local identity service."""

import pytest

from dc_ledger.errors import AuthenticationError, ConflictError, ValidationError
from dc_ledger.services.identity import LocalIdentityService
from dc_ledger.services.identity.local import hash_password, verify_password
from dc_ledger.services.storage import InMemoryUserStorage


class FakeClock:
    def __init__(self, now=1_700_000_000):
        self.now = now

    def __call__(self):
        return self.now


class TestPasswordHashing:
    """Tests for hash_password / verify_password."""

    def test_hash_verifies(self):
        stored = hash_password("hunter22", 1_000)
        assert stored.startswith("pbkdf2_sha256$1000$")
        assert verify_password("hunter22", stored)
        assert not verify_password("hunter23", stored)

    def test_hashes_are_salted(self):
        assert hash_password("same", 1_000) != hash_password("same", 1_000)

    @pytest.mark.parametrize("stored", ["", "plain", "md5$1$00$00", "pbkdf2_sha256$x$00$00", "pbkdf2_sha256$10$zz$00"])
    def test_unknown_formats_never_match(self, stored):
        assert not verify_password("anything", stored)


class TestRegisterAndLogin:
    """Tests for account registration and login."""

    def test_register_returns_token_for_new_owner(self, run, identity):
        session = run(identity.register("Owner", "Owner@Example.com", "secret1"))
        assert session.user.name == "Owner"
        assert session.user.email == "owner@example.com"
        assert identity.verify_token(session.token) == session.user.id

    def test_duplicate_email_conflicts(self, run, identity):
        run(identity.register("Owner", "owner@example.com", "secret1"))
        with pytest.raises(ConflictError, match="User already exists"):
            run(identity.register("Other", "OWNER@example.com", "secret2"))

    def test_register_validates_input(self, run, identity):
        with pytest.raises(ValidationError) as excinfo:
            run(identity.register("", "not-an-email", "123"))
        fields = {issue.field for issue in excinfo.value.issues}
        assert fields == {"name", "email", "password"}

    def test_login(self, run, identity):
        registered = run(identity.register("Owner", "owner@example.com", "secret1"))
        session = run(identity.login(" OWNER@example.com", "secret1"))
        assert session.user.id == registered.user.id
        assert identity.verify_token(session.token) == registered.user.id

    def test_wrong_password(self, run, identity):
        run(identity.register("Owner", "owner@example.com", "secret1"))
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            run(identity.login("owner@example.com", "wrong!"))

    def test_unknown_email(self, run, identity):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            run(identity.login("nobody@example.com", "secret1"))

    def test_owners_get_distinct_ids(self, run, identity):
        a = run(identity.register("A", "a@example.com", "secret1"))
        b = run(identity.register("B", "b@example.com", "secret1"))
        assert a.user.id != b.user.id


class TestTokens:
    """Tests for token issue and verification."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def service(self, auth_settings, clock):
        return LocalIdentityService(InMemoryUserStorage(), auth_settings, clock=clock)

    def test_missing_token(self, service):
        with pytest.raises(AuthenticationError, match="No token"):
            service.verify_token("")

    @pytest.mark.parametrize("token", ["garbage", "a.b.c", "é.é", "!!!.???"])
    def test_malformed_token(self, service, token):
        with pytest.raises(AuthenticationError, match="Token is not valid"):
            service.verify_token(token)

    def test_tampered_payload(self, run, service):
        session = run(service.register("Owner", "owner@example.com", "secret1"))
        other = run(service.register("Other", "other@example.com", "secret1"))
        forged_payload = other.token.split(".")[0]
        signature = session.token.split(".")[1]
        with pytest.raises(AuthenticationError, match="Token is not valid"):
            service.verify_token(f"{forged_payload}.{signature}")

    def test_token_from_another_secret(self, run, service, auth_settings, clock):
        foreign = LocalIdentityService(
            InMemoryUserStorage(),
            auth_settings.model_copy(update={"secret_key": "another-secret"}),
            clock=clock,
        )
        session = run(foreign.register("Owner", "owner@example.com", "secret1"))
        with pytest.raises(AuthenticationError, match="Token is not valid"):
            service.verify_token(session.token)

    def test_expiry(self, run, service, auth_settings, clock):
        session = run(service.register("Owner", "owner@example.com", "secret1"))

        clock.now += auth_settings.token_ttl_seconds - 1
        assert service.verify_token(session.token) == session.user.id

        clock.now += 1
        with pytest.raises(AuthenticationError, match="Token has expired"):
            service.verify_token(session.token)
