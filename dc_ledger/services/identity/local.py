"""
Local Identity Service

Password accounts stored through UserStorageInterface, with signed
bearer tokens that carry the owner id.

- Passwords: salted PBKDF2-HMAC-SHA256, stored as
  "pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>"
- Tokens: "<payload>.<signature>", both base64url without padding.
  The payload is JSON {"id": <owner uuid>, "exp": <unix seconds>} and the
  signature is HMAC-SHA256 over the encoded payload with the configured
  secret.

The secret comes from AuthSettings. There is no fallback secret.
"""

import base64
import hashlib
import hmac
import json
import secrets
import time
from typing import Callable, Optional
from uuid import UUID, uuid4

from dc_ledger.config import AuthSettings
from dc_ledger.errors import AuthenticationError, ConflictError, ValidationError
from dc_ledger.logs import LedgerLogger
from dc_ledger.models.ledger import ValidationIssue
from dc_ledger.models.user import AuthSession, User
from dc_ledger.services.identity.interface import IdentityProvider
from dc_ledger.services.storage.interface import DuplicateError, UserStorageInterface


HASH_SCHEME = "pbkdf2_sha256"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def hash_password(password: str, iterations: int) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_SCHEME}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored hash. Unknown formats never match."""
    try:
        scheme, iterations, salt_hex, digest_hex = stored.split("$")
        if scheme != HASH_SCHEME:
            return False
        digest = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            bytes.fromhex(salt_hex),
            int(iterations),
        )
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False
    return hmac.compare_digest(digest, expected)


class LocalIdentityService(IdentityProvider):
    """Password login with HMAC-signed owner tokens."""

    def __init__(
        self,
        user_storage: UserStorageInterface,
        settings: AuthSettings,
        logger: Optional[LedgerLogger] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            user_storage: Where accounts live
            settings: Secret, token lifetime and hashing parameters
            logger: Operational logger; a default one is created if None
            clock: Returns the current unix time (overridable in tests)
        """
        self._users = user_storage
        self._settings = settings
        self._logger = logger or LedgerLogger()
        self._clock = clock

    async def register(self, name: str, email: str, password: str) -> AuthSession:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        password = password or ""

        issues = []
        if not name:
            issues.append(ValidationIssue(
                field="name", issue_type="missing", message="Name is required",
            ))
        if "@" not in email:
            issues.append(ValidationIssue(
                field="email", issue_type="invalid_value", message="A valid email is required",
            ))
        if len(password) < self._settings.min_password_length:
            issues.append(ValidationIssue(
                field="password",
                issue_type="too_short",
                message=(
                    "Password must be at least "
                    f"{self._settings.min_password_length} characters"
                ),
            ))
        if issues:
            raise ValidationError(
                "Invalid registration: " + "; ".join(i.message for i in issues),
                issues=issues,
            )

        user = User(
            id=uuid4(),
            name=name,
            email=email,
            password_hash=hash_password(password, self._settings.hash_iterations),
        )
        try:
            await self._users.insert_user(user)
        except DuplicateError:
            self._logger.registration_rejected(email=email, reason="duplicate_email")
            raise ConflictError("User already exists")

        self._logger.user_registered(user_id=user.id)
        return AuthSession(token=self.issue_token(user.id), user=user.to_public())

    async def login(self, email: str, password: str) -> AuthSession:
        user = await self._users.get_user_by_email((email or "").strip().lower())
        if user is None or not verify_password(password or "", user.password_hash):
            self._logger.login_failed(email=email)
            raise AuthenticationError("Invalid credentials")

        self._logger.user_logged_in(user_id=user.id)
        return AuthSession(token=self.issue_token(user.id), user=user.to_public())

    def issue_token(self, owner_id: UUID) -> str:
        payload = {
            "id": str(owner_id),
            "exp": int(self._clock()) + self._settings.token_ttl_seconds,
        }
        encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{encoded}.{self._sign(encoded)}"

    def verify_token(self, token: str) -> UUID:
        if not token:
            raise AuthenticationError("No token, authorization denied")

        try:
            encoded, signature = token.split(".")
        except ValueError:
            raise AuthenticationError("Token is not valid")

        if not hmac.compare_digest(signature.encode("utf-8"), self._sign(encoded).encode("ascii")):
            raise AuthenticationError("Token is not valid")

        try:
            payload = json.loads(_b64decode(encoded))
            owner_id = UUID(payload["id"])
            expires_at = int(payload["exp"])
        except (ValueError, KeyError, TypeError):
            raise AuthenticationError("Token is not valid")

        if expires_at <= self._clock():
            raise AuthenticationError("Token has expired")
        return owner_id

    def _sign(self, encoded: str) -> str:
        mac = hmac.new(
            self._settings.secret_key.encode("utf-8"),
            encoded.encode("utf-8"),
            hashlib.sha256,
        )
        return _b64encode(mac.digest())
