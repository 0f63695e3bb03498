"""Shared fixtures: an in-memory store seeded with a disputed sala."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.database import InMemoryKVStore, get_store
from app.main import app

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

SALA_ID = "sala-1"
DISPUTA_ID = "disp-1"
MARCA_ID = "marca-1"
SOCIO_ID = "socio-1"


def make_event(tipo: str, offset_days: float = 0, autor: str = MARCA_ID, idx: int = 0) -> dict:
    return {
        "id": f"ev-{tipo}-{idx}-{offset_days}",
        "tipo": tipo,
        "descripcion": tipo,
        "timestamp": (BASE_TIME + timedelta(days=offset_days)).isoformat(),
        "autor": autor,
    }


def make_sala(**overrides) -> dict:
    """Disputed sala with neutral timeline and no evidence unless overridden."""
    sala = {
        "id": SALA_ID,
        "marcaId": MARCA_ID,
        "socioId": SOCIO_ID,
        "titulo": "Campaña de lanzamiento",
        "totalProducto": 1000,
        "comisionSocio": 20,
        "gananciaSocio": 200,
        "feePARTTH": 150,
        "netoMarca": 650,
        "estado": "en_disputa",
        "evidenciaEntregada": False,
        "tieneDisputa": True,
        "disputa": {
            "id": DISPUTA_ID,
            "estado": "abierta",
            "razon": "Entrega incompleta",
            "abiertaPor": MARCA_ID,
        },
        "timeline": [make_event("creacion")],
    }
    sala.update(overrides)
    return sala


def make_wallet(user_id: str, **overrides) -> dict:
    wallet = {
        "userId": user_id,
        "disponible": 0,
        "enEscrow": 0,
        "enHold": 0,
        "enRevision": 0,
        "enDisputa": 0,
        "totalIngresos": 0,
        "totalTarifasPagadas": 0,
    }
    wallet.update(overrides)
    return wallet


def make_user(user_id: str, user_type: str, **overrides) -> dict:
    user = {
        "id": user_id,
        "name": user_id,
        "userType": user_type,
        "reputation": 50,
        "completedDeals": 0,
    }
    user.update(overrides)
    return user


def strong_evidence() -> dict:
    return {
        "evidenciaEntregada": True,
        "evidencia": {
            "archivos": [{"name": f"captura-{i}.png"} for i in range(5)],
            "notas": "x" * 200,
        },
    }


@pytest.fixture()
def store() -> InMemoryKVStore:
    """Store with a disputed sala and both wallets holding the contested funds."""
    return InMemoryKVStore({
        f"sala:{SALA_ID}": make_sala(),
        f"wallet:{MARCA_ID}": make_wallet(MARCA_ID, enDisputa=1000),
        f"wallet:{SOCIO_ID}": make_wallet(SOCIO_ID, enDisputa=200),
    })


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
