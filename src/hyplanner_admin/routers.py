"""HTTP routes. Handlers only parse input, call a service and wrap the result."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from pydantic import BaseModel

from .auth import AdminAuthService
from .errors import InternalError
from .filters import UserListQuery, WeddingListQuery
from .repository import AdminRepository, utcnow
from .service import (
    AdminSettingsService,
    DashboardService,
    FeedbackService,
    UserService,
    WeddingService,
)


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": True}
    if message is not None:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    return payload


def get_repository(request: Request) -> AdminRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise InternalError("Database is not configured")
    return repository


def get_auth_service(request: Request) -> AdminAuthService:
    return request.app.state.auth


def get_settings_service(request: Request) -> AdminSettingsService:
    return request.app.state.settings


def get_dashboard_service(
    request: Request, repository: AdminRepository = Depends(get_repository)
) -> DashboardService:
    return DashboardService(repository, clock=request.app.state.clock, started_at=request.app.state.started_at)


def get_wedding_service(
    request: Request, repository: AdminRepository = Depends(get_repository)
) -> WeddingService:
    return WeddingService(repository, clock=request.app.state.clock)


def get_user_service(request: Request, repository: AdminRepository = Depends(get_repository)) -> UserService:
    return UserService(repository, clock=request.app.state.clock)


def get_feedback_service(repository: AdminRepository = Depends(get_repository)) -> FeedbackService:
    return FeedbackService(repository)


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class FeedbackPayload(BaseModel):
    star: Optional[Any] = None
    content: Optional[Any] = None


class UserUpdatePayload(BaseModel):
    fullName: Optional[str] = None
    email: Optional[str] = None
    accountType: Optional[str] = None
    isVerified: Optional[bool] = None


health_router = APIRouter(tags=["health"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])
users_router = APIRouter(prefix="/users", tags=["users"])
dashboard_router = APIRouter(prefix="/dashboard", tags=["dashboard"])
weddings_router = APIRouter(prefix="/weddings", tags=["weddings"])
feedback_router = APIRouter(prefix="/feedback", tags=["feedback"])


@health_router.get("/health")
async def health() -> Dict[str, Any]:
    return envelope(
        {"status": "OK", "timestamp": utcnow().isoformat()},
        message="HyPlanner Admin Backend is running",
    )


# -- auth -------------------------------------------------------------------


@auth_router.post("/login")
async def login(
    payload: Optional[LoginRequest] = None,
    auth: AdminAuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    payload = payload or LoginRequest()
    return envelope(auth.login(payload.username, payload.password), message="Login successful")


@auth_router.get("/verify")
async def verify(
    authorization: Optional[str] = Header(None),
    auth: AdminAuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    identity = auth.verify(authorization)
    return envelope({"user": identity.as_dict()}, message="Token is valid")


@auth_router.post("/logout")
async def logout() -> Dict[str, Any]:
    return envelope(message="Logout successful")


# -- admin ------------------------------------------------------------------


@admin_router.get("/profile")
async def admin_profile(auth: AdminAuthService = Depends(get_auth_service)) -> Dict[str, Any]:
    return envelope({"user": auth.credentials.administrator().profile()})


@admin_router.get("/settings")
async def read_settings(settings: AdminSettingsService = Depends(get_settings_service)) -> Dict[str, Any]:
    return envelope({"settings": settings.current()})


@admin_router.put("/settings")
async def update_settings(
    changes: Optional[Dict[str, Any]] = Body(None),
    settings: AdminSettingsService = Depends(get_settings_service),
) -> Dict[str, Any]:
    return envelope({"settings": settings.update(changes or {})}, message="Settings updated successfully")


# -- users ------------------------------------------------------------------


@users_router.get("")
async def list_users(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    account_type: Optional[str] = Query(None, alias="accountType"),
    is_verified: Optional[str] = Query(None, alias="isVerified"),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    query = UserListQuery.from_params(page, limit, search, account_type, is_verified)
    result = await service.list_users(query)
    return envelope({"users": result.items, "pagination": result.pagination.as_dict()})


@users_router.get("/stats/overview")
async def user_statistics(service: UserService = Depends(get_user_service)) -> Dict[str, Any]:
    return envelope(await service.statistics())


@users_router.get("/{user_id}")
async def get_user(user_id: str, service: UserService = Depends(get_user_service)) -> Dict[str, Any]:
    user = await service.get_user(user_id)
    return envelope({"user": user.as_dict()})


@users_router.put("/{user_id}")
async def update_user(
    user_id: str,
    payload: Optional[UserUpdatePayload] = None,
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_none=True) if payload else {}
    user = await service.update_user(user_id, changes)
    return envelope({"user": user.as_dict()}, message="User updated successfully")


@users_router.delete("/{user_id}")
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)) -> Dict[str, Any]:
    await service.delete_user(user_id)
    return envelope(message="User deleted successfully")


@users_router.patch("/{user_id}/toggle-status")
async def toggle_user_status(user_id: str, service: UserService = Depends(get_user_service)) -> Dict[str, Any]:
    user = await service.toggle_status(user_id)
    state = "verified" if user.is_verified else "unverified"
    return envelope(
        {"user": user.summary("fullName", "email", "isVerified")},
        message=f"User {state} successfully",
    )


# -- dashboard --------------------------------------------------------------


@dashboard_router.get("/overview")
async def dashboard_overview(service: DashboardService = Depends(get_dashboard_service)) -> Dict[str, Any]:
    return envelope(await service.overview())


@dashboard_router.get("/stats")
async def dashboard_stats(service: DashboardService = Depends(get_dashboard_service)) -> Dict[str, Any]:
    return envelope(await service.dashboard_stats())


@dashboard_router.get("/user-growth")
async def user_growth(
    days: Optional[str] = Query(None),
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    return envelope(await service.user_growth(days))


@dashboard_router.get("/user-growth-monthly")
async def user_growth_monthly(
    months: Optional[str] = Query(None),
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    return envelope(await service.user_growth_monthly(months))


@dashboard_router.get("/account-distribution")
async def account_distribution(service: DashboardService = Depends(get_dashboard_service)) -> Dict[str, Any]:
    return envelope(await service.account_distribution())


@dashboard_router.get("/system-health")
async def system_health(service: DashboardService = Depends(get_dashboard_service)) -> Dict[str, Any]:
    return envelope(await service.system_health())


# -- weddings ---------------------------------------------------------------


@weddings_router.get("/stats")
async def wedding_statistics(service: WeddingService = Depends(get_wedding_service)) -> Dict[str, Any]:
    return envelope(await service.statistics())


@weddings_router.get("")
async def list_weddings(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    month: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    service: WeddingService = Depends(get_wedding_service),
) -> Dict[str, Any]:
    query = WeddingListQuery.from_params(page, limit, status, month, search)
    result = await service.list_weddings(query)
    return envelope({"weddings": result.items, "pagination": result.pagination.as_dict()})


@weddings_router.get("/{wedding_id}")
async def wedding_detail(wedding_id: str, service: WeddingService = Depends(get_wedding_service)) -> Dict[str, Any]:
    return envelope(await service.wedding_detail(wedding_id))


@weddings_router.delete("/{wedding_id}")
async def delete_wedding(wedding_id: str, service: WeddingService = Depends(get_wedding_service)) -> Dict[str, Any]:
    await service.delete_wedding(wedding_id)
    return envelope(message="Wedding event deleted successfully")


# -- feedback ---------------------------------------------------------------


@feedback_router.post("/create/{user_id}", status_code=201)
async def create_feedback(
    user_id: str,
    payload: Optional[FeedbackPayload] = None,
    service: FeedbackService = Depends(get_feedback_service),
) -> Dict[str, Any]:
    payload = payload or FeedbackPayload()
    feedback = await service.create(user_id, payload.star, payload.content)
    return envelope({"feedback": feedback.as_dict()}, message="Thank you for your feedback!")


@feedback_router.put("/update/{user_id}")
async def update_feedback(
    user_id: str,
    payload: Optional[FeedbackPayload] = None,
    service: FeedbackService = Depends(get_feedback_service),
) -> Dict[str, Any]:
    payload = payload or FeedbackPayload()
    feedback = await service.update(user_id, payload.star, payload.content)
    return envelope({"feedback": feedback.as_dict()}, message="Feedback updated successfully")


@feedback_router.get("/my-feedback/{user_id}")
async def my_feedback(user_id: str, service: FeedbackService = Depends(get_feedback_service)) -> Dict[str, Any]:
    return envelope({"feedback": await service.for_user(user_id)})


@feedback_router.delete("/delete/{user_id}")
async def delete_feedback(user_id: str, service: FeedbackService = Depends(get_feedback_service)) -> Dict[str, Any]:
    await service.delete(user_id)
    return envelope(message="Feedback deleted successfully")


@feedback_router.get("/all")
async def all_feedback(service: FeedbackService = Depends(get_feedback_service)) -> Dict[str, Any]:
    return envelope(await service.list_all())


@feedback_router.get("/statistics")
async def feedback_statistics(service: FeedbackService = Depends(get_feedback_service)) -> Dict[str, Any]:
    return envelope(await service.statistics())


ROUTERS = (
    health_router,
    auth_router,
    admin_router,
    users_router,
    dashboard_router,
    weddings_router,
    feedback_router,
)
