"""Administrative endpoints."""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_admin_service
from api.v1.schemas import EraseRequest
from votewatch.services import AdminService


router = APIRouter()


@router.post("/erase")
async def erase_database(
    body: EraseRequest,
    admin: AdminService = Depends(get_admin_service),
) -> Dict[str, Dict[str, int]]:
    """Delete all stored data. Requires ``{"confirm": true}``."""
    if not body.confirm:
        raise HTTPException(status_code=400, detail="Erase not confirmed")
    deleted = await admin.erase_database()
    return {"deleted": deleted}
