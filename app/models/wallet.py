"""Wallet models."""

from typing import Optional

from app.models.dispute import CamelModel


class Wallet(CamelModel):
    """Per-user balances, stored under ``wallet:<id>``.

    Funds move between buckets as a sala progresses:
    disponible -> enEscrow (marca) / enHold (socio) -> enDisputa -> disponible.
    """
    user_id: Optional[str] = None
    disponible: float = 0
    en_escrow: float = 0
    en_hold: float = 0
    en_revision: float = 0
    en_disputa: float = 0
    total_ingresos: float = 0
    total_tarifas_pagadas: float = 0
    referral_earnings: float = 0

    class Config:
        extra = "allow"

    def release_from_dispute(self, amount: float) -> None:
        """Move ``amount`` from the dispute bucket back to available funds."""
        self.en_disputa -= amount
        self.disponible += amount
