from __future__ import annotations

from typing import Optional, Protocol

from photocap.logging import get_logger
from photocap.service.errors import (
    AccountDeactivated,
    DuplicateIdentity,
    InvalidCredentials,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from photocap.service.passwords import PasswordManager
from photocap.service.tenants import AuthResult, TenantPolicy
from photocap.service.tokens import Expired, InvalidSignature, TokenCodec
from photocap.storage.errors import ConstraintViolation
from photocap.storage.models import Identity, TenantClass

logger = get_logger(__name__)

# Never writable through a profile update, whatever the tenant.
_PROTECTED_PROFILE_FIELDS = frozenset(
    {"email", "password", "password_hash", "is_active", "role", "id"}
)


class CredentialStore(Protocol):
    def create_identity(
        self, tenant: TenantClass, email: str, password_hash: str, **fields
    ) -> Identity: ...

    def get_identity_by_email(self, tenant: TenantClass, email: str) -> Optional[Identity]: ...

    def get_identity(self, tenant: TenantClass, identity_id: str) -> Optional[Identity]: ...

    def update_identity(
        self, tenant: TenantClass, identity_id: str, **fields
    ) -> Optional[Identity]: ...

    def get_password_hash(self, tenant: TenantClass, identity_id: str) -> Optional[str]: ...

    def save_password(self, tenant: TenantClass, identity_id: str, password_hash: str) -> None: ...


class TenantAuthService:
    """Registration, login and session checks for one tenant class.

    The admin and studio stacks are the same service configured with a
    different :class:`TenantPolicy`.
    """

    def __init__(
        self,
        store: CredentialStore,
        codec: TokenCodec,
        passwords: PasswordManager,
        policy: TenantPolicy,
    ) -> None:
        self.store = store
        self.codec = codec
        self.passwords = passwords
        self.policy = policy
        self.logger = logger.bind(tenant=policy.tenant.value)

    @property
    def tenant(self) -> TenantClass:
        return self.policy.tenant

    @property
    def cookie_name(self) -> str:
        return self.policy.cookie_name

    async def register(self, email: str, password: str, **fields) -> AuthResult:
        password_hash = await self.passwords.hash_async(password)
        try:
            identity = self.store.create_identity(self.tenant, email, password_hash, **fields)
        except ConstraintViolation:
            self.logger.info("register_duplicate_email")
            raise DuplicateIdentity(
                f"A {self.policy.label} with this email already exists",
                errors=[{"field": "email", "message": "Email is already registered"}],
            )
        self.logger.info("identity_registered", identity_id=identity.id)
        return AuthResult(identity=identity, token=self.issue_token(identity))

    async def login(self, email: str, password: str) -> AuthResult:
        identity = self.store.get_identity_by_email(self.tenant, email)
        if identity and not identity.is_active:
            # Same cost as a real verification
            await self.passwords.verify_async(None, password)
            self.logger.info("login_rejected_inactive", identity_id=identity.id)
            raise AccountDeactivated("Account is deactivated")
        stored_hash = (
            self.store.get_password_hash(self.tenant, identity.id) if identity else None
        )
        # Unknown emails still pay for one hash verification
        verified = await self.passwords.verify_async(stored_hash, password)
        if not identity or not verified:
            self.logger.info("login_failed", known_identity=identity is not None)
            raise InvalidCredentials("Invalid email or password")
        if self.passwords.needs_rehash(stored_hash):
            self.store.save_password(
                self.tenant, identity.id, await self.passwords.hash_async(password)
            )
            self.logger.info("password_rehashed", identity_id=identity.id)
        self.logger.info("login_succeeded", identity_id=identity.id)
        return AuthResult(identity=identity, token=self.issue_token(identity))

    def logout(self, identity: Optional[Identity] = None) -> str:
        """Return the cookie to expire. Issued tokens stay valid until they expire."""
        self.logger.info("logout", identity_id=identity.id if identity else None)
        return self.cookie_name

    def get_profile(self, identity_id: str) -> Identity:
        identity = self.store.get_identity(self.tenant, identity_id)
        if not identity:
            raise NotFound(f"{self.policy.label.capitalize()} not found")
        return identity

    def update_profile(self, identity_id: str, **fields) -> Identity:
        protected = sorted(_PROTECTED_PROFILE_FIELDS.intersection(fields))
        unknown = sorted(set(fields) - self.policy.profile_fields - _PROTECTED_PROFILE_FIELDS)
        if protected or unknown:
            raise ValidationFailed(
                "Validation failed",
                errors=[
                    {"field": name, "message": "Field cannot be changed here"}
                    for name in protected
                ]
                + [{"field": name, "message": "Unknown field"} for name in unknown],
            )
        identity = self.store.update_identity(self.tenant, identity_id, **fields)
        if not identity:
            raise NotFound(f"{self.policy.label.capitalize()} not found")
        self.logger.info("profile_updated", identity_id=identity_id, fields=sorted(fields))
        return identity

    async def change_password(
        self, identity_id: str, current_password: str, new_password: str
    ) -> None:
        identity = self.get_profile(identity_id)
        stored_hash = self.store.get_password_hash(self.tenant, identity.id)
        if not await self.passwords.verify_async(stored_hash, current_password):
            self.logger.info("change_password_rejected", identity_id=identity.id)
            raise InvalidCredentials("Current password is incorrect", status_code=400)
        new_hash = await self.passwords.hash_async(new_password)
        self.store.save_password(self.tenant, identity.id, new_hash)
        self.logger.info("password_changed", identity_id=identity.id)

    def issue_token(self, identity: Identity) -> str:
        return self.codec.issue(self.policy.claims_for(identity), self.policy.token_ttl)

    def authenticate(self, token: str) -> Identity:
        """Resolve a presented token to a live, active identity."""
        try:
            claims = self.codec.verify(token)
        except Expired:
            self.logger.info("token_expired")
            raise Unauthorized("Invalid token", clear_cookie=self.cookie_name)
        except InvalidSignature as exc:
            self.logger.warning("token_invalid", reason=str(exc))
            raise Unauthorized("Invalid token", clear_cookie=self.cookie_name)
        if claims.get("tenant") != self.tenant.value:
            self.logger.warning("token_tenant_mismatch", claimed=claims.get("tenant"))
            raise Unauthorized("Invalid token", clear_cookie=self.cookie_name)
        identity_id = claims.get(self.policy.subject_claim)
        identity = (
            self.store.get_identity(self.tenant, identity_id)
            if isinstance(identity_id, str)
            else None
        )
        if not identity or not identity.is_active:
            self.logger.info("token_identity_rejected", identity_id=identity_id)
            raise Unauthorized(
                "User not found or deactivated", clear_cookie=self.cookie_name
            )
        return identity

    def set_active(self, identity_id: str, active: bool) -> Identity:
        identity = self.store.update_identity(self.tenant, identity_id, is_active=active)
        if not identity:
            raise NotFound(f"{self.policy.label.capitalize()} not found")
        self.logger.info("identity_active_changed", identity_id=identity_id, active=active)
        return identity
