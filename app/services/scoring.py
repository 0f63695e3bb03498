"""Dispute scoring: evidence, counterparty history and communication.

Each scorer returns a value in [0, 100] where 50 is neutral, higher
favours the socio and lower favours the marca.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from app.database import KVStore
from app.models.sala import Sala, TimelineEvent
from app.models.user import UserAccount, UserRole

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50

# Communication events that count as active engagement
ACTIVE_EVENT_TYPES = {"mensaje", "actualizacion"}
INACTIVITY_DAYS = 30


def clamp_score(score: float) -> float:
    return max(0, min(100, score))


def analyze_evidence(sala: Sala) -> int:
    """
    Score the evidence delivered by the socio.

    Delivered evidence earns +20, plus +10 per file (up to 3 files) and
    +10 for notes longer than 100 characters. No delivery costs -30.
    """
    score = NEUTRAL_SCORE

    if sala.evidencia_entregada:
        score += 20

        evidencia = sala.evidencia
        if evidencia and evidencia.archivos:
            score += 10 * min(len(evidencia.archivos), 3)

        if evidencia and evidencia.notas and len(evidencia.notas) > 100:
            score += 10
    else:
        score -= 30  # No evidence weighs against the socio

    return int(clamp_score(score))


async def analyze_user_history(store: KVStore, marca_id: str, socio_id: str) -> float:
    """
    Compare both parties' track records.

    Reputation gap counts 0.3 points per reputation point, more completed
    deals on the socio side adds 10, and each prior dispute a party was
    found at fault in costs 5. Missing accounts yield a neutral score.
    """
    score = NEUTRAL_SCORE

    marca_record = await store.get(f"user:{marca_id}")
    socio_record = await store.get(f"user:{socio_id}")

    if not marca_record or not socio_record:
        logger.info(
            "History neutral for marca=%s socio=%s: account missing",
            marca_id, socio_id
        )
        return score

    marca = UserAccount.model_validate(marca_record)
    socio = UserAccount.model_validate(socio_record)

    score += (socio.reputation - marca.reputation) * 0.3

    if socio.completed_deals > marca.completed_deals:
        score += 10

    # Only faults incurred in the role each party holds here count, see rebuild_fault_index
    score -= marca.faults_as(UserRole.MARCA) * 5
    score -= socio.faults_as(UserRole.SOCIO) * 5

    return clamp_score(score)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp, naive values taken as UTC. None if unreadable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def analyze_timeline(timeline: Sequence[TimelineEvent]) -> int:
    """Score communication activity and flag long silences."""
    score = NEUTRAL_SCORE

    updates = [event for event in timeline if event.tipo in ACTIVE_EVENT_TYPES]
    score += min(len(updates) * 5, 25)

    if len(timeline) > 1:
        first = _parse_timestamp(timeline[0].timestamp)
        last = _parse_timestamp(timeline[-1].timestamp)

        # An unreadable endpoint leaves the gap unknown, no penalty
        if first and last:
            days = (last - first).total_seconds() / 86400
            if days > INACTIVITY_DAYS:
                score -= 20  # Signals an abandoned sala

    return int(clamp_score(score))
