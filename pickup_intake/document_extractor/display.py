"""Operator-facing summaries of extracted data (labels in Italian, as on the documents)."""

from datetime import date, timedelta

from pickup_intake.schemas.extraction import ExtractedDocumentData

NOT_DETECTED = "Non rilevato"
NOT_DETECTED_F = "Non rilevata"
LOW_CONFIDENCE = 80
STALE_ISSUE_DATE = timedelta(days=365)


def _format_date(value: date | None, missing: str = NOT_DETECTED_F) -> str:
    return value.strftime("%d/%m/%Y") if value else missing


def format_for_display(data: ExtractedDocumentData) -> dict[str, str]:
    """Label → display value, in the order the review form shows them."""
    basin = (
        f"{data.basin_code} - {data.basin_description}".rstrip(" -")
        if data.basin_code
        else NOT_DETECTED
    )
    return {
        "Numero Buono": data.order_number or NOT_DETECTED,
        "Data Emissione": _format_date(data.issue_date),
        "Mittente": data.sender_name or NOT_DETECTED,
        "Destinatario": data.recipient_name or NOT_DETECTED,
        "Bacino": basin,
        "Tipo Flusso": f"Flusso {data.flow_type or 'N/A'}",
        "Tipo Trasporto": data.transport_type or NOT_DETECTED,
        "Distanza": f"{data.distance_km:g} km" if data.distance_km else NOT_DETECTED_F,
        "Confidenza Estrazione": f"{data.confidence}%",
        "Data Carico": _format_date(data.loading_date),
        "Data Scarico": _format_date(data.unloading_date),
        "Data Disponibilità": _format_date(data.availability_date),
    }


def review_hints(data: ExtractedDocumentData, *, today: date | None = None) -> list[str]:
    """Human-readable hints on what the reviewer should double-check."""
    today = today or date.today()
    hints: list[str] = []

    if not data.order_number:
        hints.append("Order number not detected - enter it manually")
    if data.confidence < LOW_CONFIDENCE:
        hints.append("Low extraction confidence - verify every extracted field")
    if not data.sender_name:
        hints.append("Sender name not detected")
    if not data.recipient_name:
        hints.append("Recipient name not detected")
    if not data.basin_code:
        hints.append("Basin code not detected")
    if data.issue_date < today - STALE_ISSUE_DATE:
        hints.append("Issue date is more than a year old - check the date format")

    return hints
