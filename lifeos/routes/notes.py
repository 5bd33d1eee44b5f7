from __future__ import annotations

from fastapi import APIRouter, Depends

from lifeos.auth import require_user_id
from lifeos.deps import get_record_store
from lifeos.schemas import NoteCreate
from lifeos.services.notes import add_note, export_user_data
from lifeos.store import RecordStore

router = APIRouter()


@router.post("/v1/notes")
async def create_note(
    payload: NoteCreate,
    user_id: str = Depends(require_user_id),
    store: RecordStore = Depends(get_record_store),
):
    return await add_note(store, user_id, payload.content)


@router.get("/v1/export")
async def export_data(user_id: str = Depends(require_user_id), store: RecordStore = Depends(get_record_store)):
    return await export_user_data(store, user_id)
