"""Account models for Marcas and Socios."""

from enum import Enum
from typing import Optional

from app.models.dispute import CamelModel


class UserRole(str, Enum):
    """User role enumeration."""
    MARCA = "marca"
    SOCIO = "socio"


class UserAccount(CamelModel):
    """Account record as stored under ``user:<id>``."""
    id: str
    name: Optional[str] = None
    user_type: Optional[str] = None  # normally a UserRole value, stored as sent at signup
    reputation: float = 0  # 0-100 nominal, engagement bonuses can push it higher
    completed_deals: int = 0
    # Prior disputes resolved against this user, per role held in the sala
    at_fault_as_marca: int = 0
    at_fault_as_socio: int = 0

    class Config:
        extra = "allow"

    def faults_as(self, role: UserRole) -> int:
        if role == UserRole.MARCA:
            return self.at_fault_as_marca
        return self.at_fault_as_socio

    def add_fault(self, role: UserRole) -> None:
        if role == UserRole.MARCA:
            self.at_fault_as_marca += 1
        else:
            self.at_fault_as_socio += 1
