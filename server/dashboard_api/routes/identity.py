"""Identity API routes.

Stores the user record and bearer token the vitals client reads when
deriving alerts.
"""
from fastapi import APIRouter, HTTPException

from ..models.assessments import IdentityRequest
from ..database import store_manager

router = APIRouter(prefix="/api/identity", tags=["Identity"])


@router.put("")
async def sign_in(request: IdentityRequest):
    if not store_manager.identity.sign_in(request.user, request.token):
        raise HTTPException(status_code=500, detail="Failed to store identity")
    return {"status": "signed_in"}


@router.delete("")
async def sign_out():
    """Forget the cached user and token; alerts stop being derived."""
    store_manager.identity.sign_out()
    return {"status": "signed_out"}
