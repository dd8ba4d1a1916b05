"""Notification center API routes.

Every list request runs a fresh reconciliation pass; passes are serialized
so two requests never read-modify-write the stored list at the same time.
"""
import asyncio
from fastapi import APIRouter, HTTPException, Query

from notification_center import filter_notifications, route_for

from ..models.notifications import (
    NotificationListResponse,
    UnreadCountResponse,
    RouteResponse,
    SystemNotificationRequest,
)
from ..database import store_manager

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

_reconcile_lock = asyncio.Lock()


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    filter_name: str = Query(default="All", alias="filter", description="All, Unread, Alert, System or Store"),
):
    """
    Reconcile vitals alerts, stored assessments and system notifications,
    then return the list newest first.
    """
    async with _reconcile_lock:
        result = await store_manager.reconciler.reconcile()

    return NotificationListResponse(
        notifications=[n.to_dict() for n in filter_notifications(result.notifications, filter_name)],
        unread_count=result.unread_count,
        alerts_derived=result.alerts_derived,
        vitals_error=result.vitals_error,
        identity_missing=result.identity_missing,
        persisted=result.persisted,
    )


@router.get("/filters", response_model=list[str])
async def get_filters():
    """Filter tabs for the current list."""
    return store_manager.inbox.available_filters()


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count():
    return UnreadCountResponse(unread_count=store_manager.inbox.unread_count())


@router.post("/read-all")
async def mark_all_read():
    """Mark every notification read and return the updated list."""
    return [n.to_dict() for n in store_manager.inbox.mark_all_as_read()]


@router.post("/system", status_code=201)
async def create_system_notification(request: SystemNotificationRequest):
    """Queue a system notification; it appears on the next reconciliation."""
    notification = store_manager.system.add(
        request.title, request.message, severity=request.severity
    )
    return notification.to_dict()


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str):
    notification = store_manager.inbox.mark_as_read(notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return notification.to_dict()


@router.post("/{notification_id}/open", response_model=RouteResponse)
async def open_notification(notification_id: str):
    """
    Mark a notification read and return the screen it leads to.

    Store entries open their assessment summary, Alert entries open the
    assessment flow for their alert type, System entries return no screen.
    """
    notification = store_manager.inbox.mark_as_read(notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")

    route = route_for(notification)
    if route is None:
        return RouteResponse()
    return RouteResponse(screen=route.screen, params=route.params)
