"""Verdict and resolution models."""

from enum import Enum
from pydantic import BaseModel, Field, model_serializer
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class Winner(str, Enum):
    """Party favoured by a verdict."""
    SOCIO = "socio"
    MARCA = "marca"
    MEDIACION = "mediacion"  # ambiguous, needs a human


class ResolutionStatus(str, Enum):
    """Outcome of applying a verdict."""
    RESOLVED = "resolved"
    ESCALATED = "escalated"


class CamelModel(BaseModel):
    """Base for records stored with camelCase keys.

    Optional fields never given a value are left out of the serialized record.
    Everything that was read or assigned, nulls and undeclared keys included,
    is written back as is.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @model_serializer(mode="wrap")
    def _drop_unset_fields(self, handler):
        data = handler(self)
        unset = set()
        for name, field in type(self).model_fields.items():
            if name not in self.model_fields_set:
                unset.add(name)
                unset.add(field.alias or name)
        return {
            key: value for key, value in data.items()
            if not (value is None and key in unset)
        }

    def to_record(self) -> dict:
        """Serialize to the stored document shape."""
        return self.model_dump(mode="json", by_alias=True)


class VerdictScores(CamelModel):
    """Per-dimension scores behind a verdict."""
    evidence: float
    history: float
    communication: float
    total: float


class Verdict(CamelModel):
    """Weighted verdict over the three scores."""
    winner: Winner
    confidence: float  # 0-100
    reason: str
    scores: VerdictScores


class Resolution(CamelModel):
    """Resolution committed (or proposed, when escalated) for a dispute."""
    disputa_id: str
    sala_id: str
    winner: Winner
    confidence: float
    reason: str
    resolved_at: datetime
    resolved_by: str = "auto"
    auto_scores: VerdictScores
    status: Optional[ResolutionStatus] = None
    action: Optional[str] = None
    amount: Optional[float] = None
    sla: Optional[str] = None


class AutoResolveRequest(CamelModel):
    """Payload to trigger automatic resolution."""
    sala_id: str
    disputa_id: str


class DisputeOpen(CamelModel):
    """Payload to open a dispute on a sala."""
    user_id: str
    razon: str
    descripcion: str = ""


class TimelineMessageCreate(CamelModel):
    """Payload to post a message or progress update to a sala."""
    autor: str
    tipo: str = Field(default="mensaje", pattern="^(mensaje|actualizacion)$")
    descripcion: str
