from app.database import KVStore, get_store
from app.main import app

from conftest import DISPUTA_ID, MARCA_ID, SALA_ID, SOCIO_ID, make_sala, strong_evidence


class ExplodingStore(KVStore):
    async def get(self, key):
        raise RuntimeError("connection reset")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["mediation_sla_hours"] == 48


def test_auto_resolve_returns_resolution(client, store):
    store.data[f"sala:{SALA_ID}"] = make_sala(**strong_evidence())

    response = client.post("/disputes/auto-resolve", json={"salaId": SALA_ID, "disputaId": DISPUTA_ID})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "escalated"
    assert body["winner"] == "socio"
    assert body["salaId"] == SALA_ID
    assert body["disputaId"] == DISPUTA_ID
    assert body["resolvedBy"] == "auto"
    assert body["autoScores"]["total"] == 75
    assert body["sla"] == "48 horas"
    assert "action" not in body


def test_auto_resolve_missing_dispute_is_404(client):
    response = client.post("/disputes/auto-resolve", json={"salaId": "nope", "disputaId": DISPUTA_ID})

    assert response.status_code == 404
    assert response.json() == {"error": "Disputa no encontrada"}


def test_auto_resolve_twice_is_idempotent(client, store):
    payload = {"salaId": SALA_ID, "disputaId": DISPUTA_ID}

    first = client.post("/disputes/auto-resolve", json=payload).json()
    second = client.post("/disputes/auto-resolve", json=payload)

    assert second.status_code == 200
    assert second.json() == first


def test_auto_resolve_logged_dispute_under_other_sala_is_404(client):
    client.post("/disputes/auto-resolve", json={"salaId": SALA_ID, "disputaId": DISPUTA_ID})

    response = client.post("/disputes/auto-resolve", json={"salaId": "otra-sala", "disputaId": DISPUTA_ID})

    assert response.status_code == 404
    assert response.json() == {"error": "Disputa no encontrada"}


def test_auto_resolve_unexpected_error_is_500(client):
    app.dependency_overrides[get_store] = lambda: ExplodingStore()

    response = client.post("/disputes/auto-resolve", json={"salaId": SALA_ID, "disputaId": DISPUTA_ID})

    assert response.status_code == 500
    assert response.json() == {"error": "Error procesando disputa"}


def test_auto_resolve_requires_ids(client):
    response = client.post("/disputes/auto-resolve", json={"salaId": SALA_ID})

    assert response.status_code == 422
    assert "error" in response.json()


def test_criteria(client):
    body = client.get("/disputes/criteria").json()

    assert body["weights"] == {"evidence": 0.5, "history": 0.3, "communication": 0.2}
    assert body["resolution_time"]["human_mediation"] == "48 horas"
    assert len(body["socio_wins"]) == 5


def test_get_sala(client):
    assert client.get(f"/salas/{SALA_ID}").json()["marcaId"] == MARCA_ID

    response = client.get("/salas/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Sala no encontrada"}


def test_open_dispute_flow(client, store):
    store.data[f"sala:{SALA_ID}"] = make_sala(estado="activa", tieneDisputa=False, disputa=None)
    store.data[f"wallet:{MARCA_ID}"]["enEscrow"] = 1000
    store.data[f"wallet:{MARCA_ID}"]["enDisputa"] = 0

    response = client.post(
        f"/salas/{SALA_ID}/disputa",
        json={"userId": MARCA_ID, "razon": "No entregó", "descripcion": "Sin reporte"}
    )

    assert response.status_code == 200
    disputa = response.json()["disputa"]
    assert disputa["estado"] == "abierta"
    assert store.data[f"wallet:{MARCA_ID}"]["enDisputa"] == 1000

    again = client.post(f"/salas/{SALA_ID}/disputa", json={"userId": SOCIO_ID, "razon": "x"})
    assert again.status_code == 409

    resolved = client.post(
        "/disputes/auto-resolve",
        json={"salaId": SALA_ID, "disputaId": disputa["id"]}
    )
    assert resolved.status_code == 200
    assert resolved.json()["disputaId"] == disputa["id"]


def test_open_dispute_outsider_is_403(client):
    response = client.post(f"/salas/{SALA_ID}/disputa", json={"userId": "intruso", "razon": "x"})

    assert response.status_code == 403
    assert response.json() == {"error": "Usuario no autorizado"}


def test_post_timeline_message(client, store):
    response = client.post(
        f"/salas/{SALA_ID}/timeline",
        json={"autor": SOCIO_ID, "tipo": "actualizacion", "descripcion": "Campaña publicada"}
    )

    assert response.status_code == 200
    assert response.json()["tipo"] == "actualizacion"
    assert store.data[f"sala:{SALA_ID}"]["timeline"][-1]["descripcion"] == "Campaña publicada"


def test_post_timeline_rejects_system_event_types(client):
    response = client.post(
        f"/salas/{SALA_ID}/timeline",
        json={"autor": SOCIO_ID, "tipo": "disputa_resuelta", "descripcion": "x"}
    )

    assert response.status_code == 422


def test_rebuild_fault_index(client, store):
    store.data["sala:old"] = make_sala(id="old", disputa={"id": "d0", "estado": "resuelta", "culpable": "socio"})
    store.data[f"user:{SOCIO_ID}"] = {"id": SOCIO_ID, "userType": "socio", "reputation": 80}

    response = client.post("/disputes/admin/rebuild-fault-index")

    assert response.json() == {"updated": 1}
    assert store.data[f"user:{SOCIO_ID}"]["atFaultAsSocio"] == 1
