from __future__ import annotations

from typing import Optional

from fastapi import Request

from photocap.service.auth import TenantAuthService
from photocap.service.errors import Unauthorized
from photocap.storage.models import Identity, TenantClass


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class SessionGate:
    """FastAPI dependency guarding one tenant's protected routes.

    A bearer header wins over the tenant cookie. On success the identity is
    left on ``request.state.identity`` and returned to the handler. Only a
    rejected cookie token expires the cookie; a bad header leaves it alone.
    """

    def __init__(self, tenant: TenantClass) -> None:
        self.tenant = TenantClass(tenant)

    def _service(self, request: Request) -> TenantAuthService:
        runtime = request.app.state.runtime
        if self.tenant == TenantClass.ADMIN:
            return runtime.admin_auth
        return runtime.studio_auth

    def __call__(self, request: Request) -> Identity:
        service = self._service(request)
        token = _bearer_token(request.headers.get("Authorization"))
        from_cookie = False
        if not token:
            token = request.cookies.get(service.cookie_name)
            from_cookie = bool(token)
        if not token:
            raise Unauthorized("No token provided")
        try:
            identity = service.authenticate(token)
        except Unauthorized as exc:
            if not from_cookie:
                exc.clear_cookie = None
            raise
        request.state.identity = identity
        return identity


require_admin = SessionGate(TenantClass.ADMIN)
require_studio_user = SessionGate(TenantClass.STUDIO)
