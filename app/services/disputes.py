"""Dispute service: intake, automatic resolution and fault bookkeeping."""

import asyncio
import logging
import uuid
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from app.config import get_settings
from app.database import KVStore
from app.models.dispute import Resolution, ResolutionStatus, Verdict, Winner
from app.models.sala import Disputa, DisputeState, Sala, SalaState, TimelineEvent
from app.models.user import UserAccount, UserRole
from app.models.wallet import Wallet
from app.services.arbiter import calculate_verdict
from app.services.errors import InvalidTransition, NotAParty, RecordNotFound
from app.services.scoring import analyze_evidence, analyze_timeline, analyze_user_history

logger = logging.getLogger(__name__)

SYSTEM_AUTHOR = "sistema"

_locks: dict[str, asyncio.Lock] = {}
_lock_users: dict[str, int] = {}


@asynccontextmanager
async def sala_lock(sala_id: str):
    """Serialize mutations of one sala within this process."""
    lock = _locks.setdefault(sala_id, asyncio.Lock())
    _lock_users[sala_id] = _lock_users.get(sala_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _lock_users[sala_id] -= 1
        if not _lock_users[sala_id]:
            del _lock_users[sala_id]
            del _locks[sala_id]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_now() -> str:
    """UTC timestamp in the millisecond `Z` form the rest of the platform writes."""
    return _now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _event(tipo: str, descripcion: str, autor: str = SYSTEM_AUTHOR) -> TimelineEvent:
    return TimelineEvent(
        id=str(uuid.uuid4()),
        tipo=tipo,
        descripcion=descripcion,
        timestamp=_iso_now(),
        autor=autor
    )


def _transition(disputa: Disputa, target: DisputeState) -> None:
    if not disputa.estado.can_transition_to(target):
        raise InvalidTransition(
            f"Disputa en estado {disputa.estado.value} no puede pasar a {target.value}"
        )
    disputa.estado = target


async def load_sala(store: KVStore, sala_id: str) -> Sala:
    record = await store.get(f"sala:{sala_id}")
    if not record:
        raise RecordNotFound("Sala no encontrada")
    return Sala.model_validate(record)


async def _load_wallet(store: KVStore, user_id: str) -> Wallet:
    record = await store.get(f"wallet:{user_id}")
    if not record:
        raise RecordNotFound(f"Wallet no encontrada para {user_id}")
    return Wallet.model_validate(record)


async def open_dispute(
    store: KVStore,
    sala_id: str,
    user_id: str,
    razon: str,
    descripcion: str = ""
) -> Sala:
    """
    Open a dispute on a sala and freeze the contested funds.

    The marca's escrowed total and the socio's held share move to the
    ``enDisputa`` bucket of each wallet when those buckets cover them.
    """
    async with sala_lock(sala_id):
        sala = await load_sala(store, sala_id)

        if not sala.is_party(user_id):
            raise NotAParty("Usuario no autorizado")

        if sala.tiene_disputa or sala.estado == SalaState.CERRADA.value:
            raise InvalidTransition("La sala ya tiene una disputa o está cerrada")

        marca_wallet = await _load_wallet(store, sala.marca_id)
        socio_wallet = await _load_wallet(store, sala.socio_id)

        sala.tiene_disputa = True
        sala.estado = SalaState.EN_DISPUTA.value
        sala.disputa = Disputa(
            id=str(uuid.uuid4()),
            estado=DisputeState.ABIERTA,
            razon=razon,
            descripcion=descripcion,
            abierta_por=user_id,
            fecha_apertura=_iso_now()
        )

        # An active hold is extended while the dispute lasts
        extra = sala.model_extra
        if extra is not None and extra.get("enHold"):
            extra["holdExtendido"] = True

        writes = []

        if marca_wallet.en_escrow >= sala.total_producto:
            marca_wallet.en_escrow -= sala.total_producto
            marca_wallet.en_disputa += sala.total_producto
            writes.append((f"wallet:{sala.marca_id}", marca_wallet.to_record()))

        if socio_wallet.en_hold >= sala.ganancia_socio:
            socio_wallet.en_hold -= sala.ganancia_socio
            socio_wallet.en_disputa += sala.ganancia_socio
            writes.append((f"wallet:{sala.socio_id}", socio_wallet.to_record()))

        sala.timeline.append(_event("disputa_abierta", f"Disputa abierta: {razon}", autor=user_id))
        writes.append((f"sala:{sala.id}", sala.to_record()))

        await store.set_many(writes)

    logger.info("Dispute %s opened on sala %s by %s", sala.disputa.id, sala.id, user_id)
    return sala


async def add_timeline_event(
    store: KVStore,
    sala_id: str,
    autor: str,
    tipo: str,
    descripcion: str
) -> TimelineEvent:
    """Append a message or progress update from one of the parties."""
    async with sala_lock(sala_id):
        sala = await load_sala(store, sala_id)

        if not sala.is_party(autor):
            raise NotAParty("Usuario no autorizado")

        event = _event(tipo, descripcion, autor=autor)
        sala.timeline.append(event)
        await store.set(f"sala:{sala.id}", sala.to_record())

    return event


async def apply_resolution(
    store: KVStore,
    sala: Sala,
    verdict: Verdict,
    disputa_id: str
) -> Resolution:
    """
    Commit a verdict.

    Confident verdicts (>= auto_resolve_min_confidence, not mediation)
    release the contested funds to the winner and close the sala.
    Everything else is escalated to human mediation. All touched records
    are written in one ``set_many`` call together with the resolution log.
    """
    settings = get_settings()
    disputa = sala.disputa

    resolution = Resolution(
        disputa_id=disputa.id or disputa_id,
        sala_id=sala.id,
        winner=verdict.winner,
        confidence=verdict.confidence,
        reason=verdict.reason,
        resolved_at=_now(),
        auto_scores=verdict.scores
    )
    disputa.id = resolution.disputa_id

    writes = []

    if (
        verdict.confidence >= settings.auto_resolve_min_confidence
        and verdict.winner != Winner.MEDIACION
    ):
        _transition(disputa, DisputeState.RESUELTA)

        if verdict.winner == Winner.SOCIO:
            beneficiary_id = sala.socio_id
            amount = sala.ganancia_socio
            at_fault_id, culpable = sala.marca_id, UserRole.MARCA
            resolution.action = "Fondos liberados al socio"
        else:
            beneficiary_id = sala.marca_id
            amount = sala.total_producto
            at_fault_id, culpable = sala.socio_id, UserRole.SOCIO
            resolution.action = "Fondos devueltos a la marca"

        wallet = await _load_wallet(store, beneficiary_id)
        wallet.release_from_dispute(amount)
        writes.append((f"wallet:{beneficiary_id}", wallet.to_record()))

        account_record = await store.get(f"user:{at_fault_id}")
        if account_record:
            account = UserAccount.model_validate(account_record)
            account.add_fault(culpable)
            writes.append((f"user:{at_fault_id}", account.to_record()))

        resolution.amount = amount
        resolution.status = ResolutionStatus.RESOLVED

        disputa.culpable = culpable.value
        disputa.resolution = resolution
        sala.estado = SalaState.CERRADA.value
        sala.timeline.append(_event(
            "disputa_resuelta",
            f"Disputa resuelta automáticamente a favor de {verdict.winner.value} "
            f"({verdict.confidence:g}% confianza)"
        ))

        logger.info(
            "Dispute %s resolved for %s (confidence %.1f), released %.2f to %s",
            resolution.disputa_id, verdict.winner.value, verdict.confidence,
            amount, beneficiary_id
        )
    else:
        _transition(disputa, DisputeState.EN_MEDIACION)

        resolution.status = ResolutionStatus.ESCALATED
        resolution.sla = f"{settings.mediation_sla_hours} horas"

        disputa.requires_human_review = True
        disputa.auto_analysis = resolution
        sala.timeline.append(_event(
            "mediacion_requerida",
            f"Caso escalado a mediación humana (decisión en {settings.mediation_sla_hours}h)"
        ))

        logger.info(
            "Dispute %s escalated to mediation (winner=%s, confidence %.1f)",
            resolution.disputa_id, verdict.winner.value, verdict.confidence
        )

    writes.append((f"sala:{sala.id}", sala.to_record()))
    writes.append((
        f"resolucion:{resolution.disputa_id}",
        resolution.to_record()
    ))

    await store.set_many(writes)
    return resolution


async def auto_resolve_dispute(store: KVStore, sala_id: str, disputa_id: str) -> Resolution:
    """
    Score a contested sala and apply the resulting verdict.

    Retrying a dispute that was already resolved or escalated returns the
    logged resolution without moving funds again.
    """
    async with sala_lock(sala_id):
        logged = await store.get(f"resolucion:{disputa_id}")
        if logged:
            if logged.get("salaId") != sala_id:
                raise RecordNotFound("Disputa no encontrada")
            logger.info("Dispute %s already processed, returning logged resolution", disputa_id)
            return Resolution.model_validate(logged)

        record = await store.get(f"sala:{sala_id}")
        if not record or not record.get("disputa"):
            raise RecordNotFound("Disputa no encontrada")

        sala = Sala.model_validate(record)
        if sala.disputa.id and sala.disputa.id != disputa_id:
            raise RecordNotFound("Disputa no encontrada")

        if sala.disputa.estado != DisputeState.ABIERTA:
            raise InvalidTransition(
                f"Disputa en estado {sala.disputa.estado.value} no admite resolución automática"
            )

        evidence_score = analyze_evidence(sala)
        history_score = await analyze_user_history(store, sala.marca_id, sala.socio_id)
        communication_score = analyze_timeline(sala.timeline)

        verdict = calculate_verdict(evidence_score, history_score, communication_score)
        return await apply_resolution(store, sala, verdict, disputa_id)


async def rebuild_fault_index(store: KVStore) -> int:
    """
    Recount each account's at-fault disputes from the sala records.

    A marca fault counts only against the sala's marca and a socio fault
    only against its socio. Resolutions keep ``atFaultAsMarca`` and
    ``atFaultAsSocio`` current; this full scan is for backfilling accounts
    created before the counters existed.
    Returns the number of accounts updated.
    """
    marca_faults = Counter()
    socio_faults = Counter()

    for record in await store.get_by_prefix("sala:"):
        disputa = record.get("disputa") or {}
        if not record.get("tieneDisputa"):
            continue
        if disputa.get("culpable") == UserRole.MARCA.value:
            marca_faults[record.get("marcaId")] += 1
        elif disputa.get("culpable") == UserRole.SOCIO.value:
            socio_faults[record.get("socioId")] += 1

    writes = []
    for record in await store.get_by_prefix("user:"):
        account = UserAccount.model_validate(record)
        as_marca = marca_faults.get(account.id, 0)
        as_socio = socio_faults.get(account.id, 0)
        if (account.at_fault_as_marca, account.at_fault_as_socio) != (as_marca, as_socio):
            account.at_fault_as_marca = as_marca
            account.at_fault_as_socio = as_socio
            writes.append((f"user:{account.id}", account.to_record()))

    await store.set_many(writes)
    logger.info("Fault index rebuilt, %d accounts updated", len(writes))
    return len(writes)
