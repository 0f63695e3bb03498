"""Salas router: sala lookup, dispute intake and timeline messages."""

import logging

from fastapi import APIRouter, HTTPException, Depends

from app.database import KVStore, get_store
from app.models.dispute import DisputeOpen, TimelineMessageCreate
from app.services.disputes import add_timeline_event, open_dispute
from app.services.errors import InvalidTransition, NotAParty, RecordNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/salas", tags=["Salas"])


@router.get("/{sala_id}")
async def get_sala(sala_id: str, store: KVStore = Depends(get_store)):
    """Get sala details by ID."""
    sala = await store.get(f"sala:{sala_id}")

    if not sala:
        raise HTTPException(status_code=404, detail="Sala no encontrada")

    return sala


@router.post("/{sala_id}/disputa")
async def create_dispute(
    sala_id: str,
    data: DisputeOpen,
    store: KVStore = Depends(get_store)
):
    """Open a dispute on a sala (marca or socio)."""
    try:
        sala = await open_dispute(store, sala_id, data.user_id, data.razon, data.descripcion)
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAParty as e:
        raise HTTPException(status_code=403, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception:
        logger.exception("Error opening dispute on sala %s", sala_id)
        raise HTTPException(status_code=500, detail="Error abriendo disputa")

    return sala.to_record()


@router.post("/{sala_id}/timeline")
async def post_timeline_message(
    sala_id: str,
    data: TimelineMessageCreate,
    store: KVStore = Depends(get_store)
):
    """Post a message or progress update to the sala timeline."""
    try:
        event = await add_timeline_event(store, sala_id, data.autor, data.tipo, data.descripcion)
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAParty as e:
        raise HTTPException(status_code=403, detail=str(e))

    return event.model_dump(mode="json", by_alias=True)
