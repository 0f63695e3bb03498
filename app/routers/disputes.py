"""Disputes router: automatic resolution and published criteria."""

import logging

from fastapi import APIRouter, HTTPException, Depends

from app.config import get_settings
from app.database import KVStore, get_store
from app.models.dispute import AutoResolveRequest, Resolution
from app.services.arbiter import DISPUTE_CRITERIA
from app.services.disputes import auto_resolve_dispute, rebuild_fault_index
from app.services.errors import InvalidTransition, RecordNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/disputes", tags=["Disputes"])


@router.post(
    "/auto-resolve",
    response_model=Resolution,
    response_model_exclude_none=True
)
async def auto_resolve(data: AutoResolveRequest, store: KVStore = Depends(get_store)):
    """Score a dispute and either release funds or escalate to mediation."""
    try:
        return await auto_resolve_dispute(store, data.sala_id, data.disputa_id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Disputa no encontrada")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception:
        logger.exception("Error auto-resolving dispute %s", data.disputa_id)
        raise HTTPException(status_code=500, detail="Error procesando disputa")


@router.get("/criteria")
async def get_criteria():
    """Decision criteria and SLAs shown to both parties."""
    settings = get_settings()
    criteria = dict(DISPUTE_CRITERIA)
    criteria["resolution_time"] = {
        **DISPUTE_CRITERIA["resolution_time"],
        "human_mediation": f"{settings.mediation_sla_hours} horas"
    }
    return criteria


@router.post("/admin/rebuild-fault-index")
async def rebuild_faults(store: KVStore = Depends(get_store)):
    """Recount prior at-fault disputes for every account."""
    try:
        updated = await rebuild_fault_index(store)
    except Exception:
        logger.exception("Error rebuilding fault index")
        raise HTTPException(status_code=500, detail="Error reconstruyendo índice de disputas")

    return {"updated": updated}
