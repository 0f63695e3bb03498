"""Sala (escrow room) models."""

from enum import Enum
from pydantic import Field
from typing import Any, Optional, List

from app.models.dispute import CamelModel, Resolution


class SalaState(str, Enum):
    """Sala states written by the dispute engine.

    Other subsystems write further informal values, so ``Sala.estado``
    stays a plain string.
    """
    ACTIVA = "activa"
    EN_DISPUTA = "en_disputa"
    CERRADA = "cerrada"


class DisputeState(str, Enum):
    """Dispute lifecycle."""
    ABIERTA = "abierta"
    EN_MEDIACION = "en_mediacion"
    RESUELTA = "resuelta"

    def can_transition_to(self, target: "DisputeState") -> bool:
        return target in _DISPUTE_TRANSITIONS[self]


_DISPUTE_TRANSITIONS = {
    DisputeState.ABIERTA: {DisputeState.RESUELTA, DisputeState.EN_MEDIACION},
    DisputeState.EN_MEDIACION: {DisputeState.RESUELTA},
    DisputeState.RESUELTA: set(),
}


class TimelineEvent(CamelModel):
    """Entry in a sala's append-only timeline."""
    id: Optional[str] = None
    tipo: Optional[str] = None  # e.g. "mensaje", "actualizacion", "disputa_abierta"
    descripcion: Optional[str] = ""
    timestamp: Optional[str] = None  # ISO 8601 as written by the platform
    autor: Optional[str] = None

    class Config:
        extra = "allow"


class Evidencia(CamelModel):
    """Evidence submitted by the socio."""
    archivos: Optional[List[Any]] = None  # file descriptors or plain URLs
    notas: Optional[str] = ""

    class Config:
        extra = "allow"


class Disputa(CamelModel):
    """Dispute sub-record of a sala."""
    id: Optional[str] = None
    estado: DisputeState = DisputeState.ABIERTA
    razon: Optional[str] = None
    descripcion: Optional[str] = None
    abierta_por: Optional[str] = None
    fecha_apertura: Optional[str] = None
    culpable: Optional[str] = None  # "marca" | "socio" once resolved
    resolution: Optional[Resolution] = None
    requires_human_review: Optional[bool] = None
    auto_analysis: Optional[Resolution] = None

    class Config:
        extra = "allow"


class Sala(CamelModel):
    """Escrow room between a marca and a socio."""
    id: str
    marca_id: str
    socio_id: str
    titulo: Optional[str] = None
    total_producto: float = 0
    comision_socio: float = 0
    ganancia_socio: float = 0
    fee_partth: float = Field(default=0, alias="feePARTTH")
    neto_marca: float = 0
    estado: Optional[str] = SalaState.ACTIVA.value
    evidencia_entregada: Optional[bool] = False
    evidencia: Optional[Evidencia] = None
    tiene_disputa: Optional[bool] = False
    disputa: Optional[Disputa] = None
    timeline: List[TimelineEvent] = []

    class Config:
        extra = "allow"

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.marca_id, self.socio_id)
