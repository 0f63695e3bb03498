"""Rules-based arbiter that turns dispute scores into a verdict."""

from app.models.dispute import Verdict, VerdictScores, Winner

EVIDENCE_WEIGHT = 0.5
HISTORY_WEIGHT = 0.3
COMMUNICATION_WEIGHT = 0.2

SOCIO_THRESHOLD = 65
MARCA_THRESHOLD = 35


def calculate_verdict(
    evidence_score: float,
    history_score: float,
    communication_score: float
) -> Verdict:
    """
    Combine the three scores into a winner and a confidence.

    Totals of 65 or more favour the socio, 35 or less favour the marca.
    Anything in between is ambiguous and goes to human mediation with a
    fixed confidence of 50.
    """
    # Rounded so float noise cannot move a total across a threshold
    total = round(
        evidence_score * EVIDENCE_WEIGHT
        + history_score * HISTORY_WEIGHT
        + communication_score * COMMUNICATION_WEIGHT,
        6
    )

    if total >= SOCIO_THRESHOLD:
        winner = Winner.SOCIO
        confidence = min((total - 50) * 2, 100)
        reason = "Evidencia sólida y buen historial del socio"
    elif total <= MARCA_THRESHOLD:
        winner = Winner.MARCA
        confidence = min((50 - total) * 2, 100)
        reason = "Falta de evidencia o problemas de cumplimiento"
    else:
        winner = Winner.MEDIACION
        confidence = 50
        reason = "Caso requiere revisión manual"

    return Verdict(
        winner=winner,
        confidence=round(confidence, 6),
        reason=reason,
        scores=VerdictScores(
            evidence=evidence_score,
            history=history_score,
            communication=communication_score,
            total=total
        )
    )


# Published decision criteria shown to both parties
DISPUTE_CRITERIA = {
    "socio_wins": [
        "Evidencia completa entregada (capturas, archivos, reportes)",
        "Comunicación constante durante el proyecto",
        "Timeline muestra progreso regular",
        "Reputación del socio > 85%",
        "Marca no respondió a entregas en 7+ días",
    ],
    "marca_wins": [
        "Sin evidencia entregada",
        "Trabajo incompleto vs. acuerdo original",
        "Sin comunicación del socio por 14+ días",
        "Evidencia no corresponde al scope",
        "Plazo excedido sin justificación",
    ],
    "mediation": [
        "Ambos tienen argumentos válidos",
        "Evidencia parcial o ambigua",
        "Cambios de scope no documentados",
        "Falta de comunicación de ambos lados",
        "Caso complejo que requiere experto",
    ],
    "weights": {
        "evidence": EVIDENCE_WEIGHT,
        "history": HISTORY_WEIGHT,
        "communication": COMMUNICATION_WEIGHT,
    },
    "resolution_time": {
        "automatic": "24 horas",
        "human_mediation": "48 horas",
        "complex_cases": "72 horas",
    },
}
