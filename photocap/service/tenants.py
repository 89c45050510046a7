from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from photocap.config import Settings
from photocap.storage.models import Identity, TenantClass


@dataclass(frozen=True)
class TenantPolicy:
    """Everything that differs between the admin and studio auth stacks."""

    tenant: TenantClass
    label: str
    cookie_name: str
    token_ttl: timedelta
    subject_claim: str
    # claim name -> identity attribute copied into the token
    claim_fields: Mapping[str, str]
    # identity attributes a holder may change on their own profile
    profile_fields: frozenset

    def claims_for(self, identity: Identity) -> dict:
        claims = {name: getattr(identity, attr) for name, attr in self.claim_fields.items()}
        claims[self.subject_claim] = identity.id
        claims["tenant"] = self.tenant.value
        return claims


@dataclass
class AuthResult:
    identity: Identity
    token: Optional[str] = None


def admin_policy(settings: Settings) -> TenantPolicy:
    return TenantPolicy(
        tenant=TenantClass.ADMIN,
        label="admin",
        cookie_name="admin_token",
        token_ttl=settings.admin_token_ttl,
        subject_claim="admin_id",
        claim_fields={"email": "email", "role": "role"},
        profile_fields=frozenset({"name"}),
    )


def studio_policy(settings: Settings) -> TenantPolicy:
    return TenantPolicy(
        tenant=TenantClass.STUDIO,
        label="studio user",
        cookie_name="studio_token",
        token_ttl=settings.studio_token_ttl,
        subject_claim="user_id",
        claim_fields={
            "email": "email",
            "first_name": "first_name",
            "last_name": "last_name",
        },
        profile_fields=frozenset(
            {
                "first_name",
                "last_name",
                "phone",
                "date_of_birth",
                "photography_type",
                "event_types",
                "budget",
                "preferred_date",
                "subscribe_newsletter",
            }
        ),
    )
