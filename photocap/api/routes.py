from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request, Response

from photocap.api.schemas import (
    AdminAuthResponse,
    AdminPasswordChange,
    AdminProfile,
    AdminProfileResponse,
    AdminProfileUpdate,
    AdminRegisterRequest,
    AdminTokenStatus,
    ClientEventSummary,
    ClientListResponse,
    ClientOut,
    EventCreateRequest,
    EventListResponse,
    EventOut,
    EventResponse,
    EventUpdateRequest,
    LoginRequest,
    MessageResponse,
    StudioAuthResponse,
    StudioAuthStatus,
    StudioPasswordChange,
    StudioProfile,
    StudioProfileResponse,
    StudioProfileUpdate,
    StudioRegisterRequest,
)
from photocap.api.session import require_admin, require_studio_user
from photocap.logging import get_logger
from photocap.service.auth import TenantAuthService
from photocap.service.runtime import Runtime
from photocap.storage.models import AdminIdentity, Event, StudioUser

logger = get_logger(__name__)


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def _set_session_cookie(
    response: Response, runtime: Runtime, service: TenantAuthService, token: str
) -> None:
    response.set_cookie(
        service.cookie_name,
        token,
        max_age=int(service.policy.token_ttl.total_seconds()),
        httponly=True,
        secure=runtime.settings.cookie_secure,
        samesite="strict",
        path="/",
    )


def _clear_session_cookie(
    response: Response, runtime: Runtime, cookie_name: str
) -> None:
    response.delete_cookie(
        cookie_name,
        path="/",
        secure=runtime.settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )


def _admin_profile(identity: AdminIdentity) -> AdminProfile:
    return AdminProfile(**identity.profile())


def _studio_profile(identity: StudioUser) -> StudioProfile:
    return StudioProfile(**identity.profile())


def _event_out(event: Event) -> EventOut:
    return EventOut(**asdict(event))


# Public routes are declared on *_public; everything on *_gated passes the
# tenant session gate first.
admin_public = APIRouter()
admin_gated = APIRouter(dependencies=[Depends(require_admin)])
studio_public = APIRouter()
studio_gated = APIRouter(dependencies=[Depends(require_studio_user)])


# admin
@admin_public.post("/login", response_model=AdminAuthResponse)
async def admin_login(
    body: LoginRequest, response: Response, runtime: Runtime = Depends(get_runtime)
):
    result = await runtime.admin_auth.login(body.email, body.password)
    _set_session_cookie(response, runtime, runtime.admin_auth, result.token)
    return AdminAuthResponse(
        message="Login successful",
        token=result.token,
        profile=_admin_profile(result.identity),
    )


@admin_gated.post("/register", response_model=AdminProfileResponse, status_code=201)
async def admin_register(
    body: AdminRegisterRequest,
    admin: AdminIdentity = Depends(require_admin),
    runtime: Runtime = Depends(get_runtime),
):
    """Create another admin. The caller's own session cookie is left untouched."""
    result = await runtime.admin_auth.register(
        body.email, body.password, name=body.name, role=body.role
    )
    logger.info("admin_created", created_by=admin.id, admin_id=result.identity.id)
    return AdminProfileResponse(
        message="Admin registered successfully",
        profile=_admin_profile(result.identity),
    )


@admin_gated.post("/logout", response_model=MessageResponse)
async def admin_logout(
    response: Response,
    admin: AdminIdentity = Depends(require_admin),
    runtime: Runtime = Depends(get_runtime),
):
    _clear_session_cookie(response, runtime, runtime.admin_auth.logout(admin))
    return MessageResponse(message="Logout successful")


@admin_gated.get("/profile", response_model=AdminProfileResponse)
async def admin_profile(admin: AdminIdentity = Depends(require_admin)):
    return AdminProfileResponse(
        message="Profile retrieved successfully", profile=_admin_profile(admin)
    )


@admin_gated.put("/profile", response_model=AdminProfileResponse)
async def admin_update_profile(
    body: AdminProfileUpdate,
    admin: AdminIdentity = Depends(require_admin),
    runtime: Runtime = Depends(get_runtime),
):
    updated = runtime.admin_auth.update_profile(
        admin.id, **body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return AdminProfileResponse(
        message="Profile updated successfully", profile=_admin_profile(updated)
    )


@admin_gated.post("/change-password", response_model=MessageResponse)
async def admin_change_password(
    body: AdminPasswordChange,
    admin: AdminIdentity = Depends(require_admin),
    runtime: Runtime = Depends(get_runtime),
):
    await runtime.admin_auth.change_password(
        admin.id, body.current_password, body.new_password
    )
    return MessageResponse(message="Password changed successfully")


@admin_gated.get("/verify-token", response_model=AdminTokenStatus)
async def admin_verify_token(admin: AdminIdentity = Depends(require_admin)):
    return AdminTokenStatus(message="Token is valid", profile=_admin_profile(admin))


# studio
@studio_public.post("/register", response_model=StudioAuthResponse, status_code=201)
async def studio_register(
    body: StudioRegisterRequest,
    response: Response,
    runtime: Runtime = Depends(get_runtime),
):
    fields = body.model_dump(exclude={"email", "password"})
    result = await runtime.studio_auth.register(body.email, body.password, **fields)
    _set_session_cookie(response, runtime, runtime.studio_auth, result.token)
    return StudioAuthResponse(
        message="Registration successful",
        token=result.token,
        profile=_studio_profile(result.identity),
    )


@studio_public.post("/login", response_model=StudioAuthResponse)
async def studio_login(
    body: LoginRequest, response: Response, runtime: Runtime = Depends(get_runtime)
):
    result = await runtime.studio_auth.login(body.email, body.password)
    _set_session_cookie(response, runtime, runtime.studio_auth, result.token)
    return StudioAuthResponse(
        message="Login successful",
        token=result.token,
        profile=_studio_profile(result.identity),
    )


@studio_gated.post("/logout", response_model=MessageResponse)
async def studio_logout(
    response: Response,
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    _clear_session_cookie(response, runtime, runtime.studio_auth.logout(user))
    return MessageResponse(message="Logout successful")


@studio_gated.get("/profile", response_model=StudioProfileResponse)
async def studio_profile(user: StudioUser = Depends(require_studio_user)):
    return StudioProfileResponse(
        message="Profile retrieved successfully", profile=_studio_profile(user)
    )


@studio_gated.put("/profile", response_model=StudioProfileResponse)
async def studio_update_profile(
    body: StudioProfileUpdate,
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    updated = runtime.studio_auth.update_profile(
        user.id, **body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return StudioProfileResponse(
        message="Profile updated successfully", profile=_studio_profile(updated)
    )


@studio_gated.post("/change-password", response_model=MessageResponse)
async def studio_change_password(
    body: StudioPasswordChange,
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    await runtime.studio_auth.change_password(
        user.id, body.current_password, body.new_password
    )
    return MessageResponse(message="Password changed successfully")


@studio_gated.get("/check-auth", response_model=StudioAuthStatus)
async def studio_check_auth(user: StudioUser = Depends(require_studio_user)):
    return StudioAuthStatus(authenticated=True, profile=_studio_profile(user))


@studio_gated.get("/events", response_model=EventListResponse)
async def list_events(
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    return EventListResponse(
        events=[_event_out(e) for e in runtime.bookings.list_events(user.id)]
    )


@studio_gated.post("/events", response_model=EventResponse, status_code=201)
async def create_event(
    body: EventCreateRequest,
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    event = runtime.bookings.create_event(user.id, **body.model_dump())
    return EventResponse(message="Event created successfully", event=_event_out(event))


@studio_gated.get("/events/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    event = runtime.bookings.get_event(user.id, event_id)
    return EventResponse(message="Event retrieved successfully", event=_event_out(event))


@studio_gated.put("/events/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    body: EventUpdateRequest,
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    event = runtime.bookings.update_event(
        user.id, event_id, **body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return EventResponse(message="Event updated successfully", event=_event_out(event))


@studio_gated.delete("/events/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: str,
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    runtime.bookings.delete_event(user.id, event_id)
    return MessageResponse(message="Event deleted successfully")


@studio_gated.get("/clients", response_model=ClientListResponse)
async def list_clients(
    user: StudioUser = Depends(require_studio_user),
    runtime: Runtime = Depends(get_runtime),
):
    clients = [
        ClientOut(
            **asdict(client),
            recent_events=[ClientEventSummary(**asdict(e)) for e in events],
        )
        for client, events in runtime.bookings.list_clients(user.id)
    ]
    return ClientListResponse(clients=clients)


admin_router = APIRouter(prefix="/api/admin", tags=["admin"])
admin_router.include_router(admin_public)
admin_router.include_router(admin_gated)

studio_router = APIRouter(prefix="/api/studio", tags=["studio"])
studio_router.include_router(studio_public)
studio_router.include_router(studio_gated)

router = APIRouter()
router.include_router(admin_router)
router.include_router(studio_router)
