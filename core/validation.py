"""
Validation and normalization of the categorization service response.

The response is untrusted: it is parsed, checked against the expected
shape and turned into a canonical AnalisisResultado. Individual
transaction fields may be repaired; anything else fails the whole document.
"""
import json
import math
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from core.aggregation import compute_summary, cross_check
from core.exceptions import MalformedResponseError, SchemaError, ValidationError
from core.logger import preview, setup_logger
from core.normalize import clean_amount, normalize_date
from core.schema import (
    FALLBACK_CATEGORY,
    INCOME_CATEGORY,
    AnalisisResultado,
    Movimiento,
    match_category,
)

logger = setup_logger(__name__)

MISSING_DESCRIPTION = "Sin descripción"
SUMMARY_FIELDS = ("total_ingresos", "total_gastos", "balance")


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def normalize_movimiento(
    raw: Any,
    index: int,
    strict_categories: bool = False
) -> Movimiento:
    """
    Build a canonical transaction from one raw response entry.

    Empty descriptions and unknown categories are coerced to the fallback
    category instead of rejecting the document (unless strict_categories).

    Args:
        raw: Raw transaction object from the response
        index: Position in the response, for error details
        strict_categories: Reject unknown categories instead of coercing them

    Returns:
        Movimiento

    Raises:
        SchemaError: If the entry is not an object or its amount is unusable
    """
    if not isinstance(raw, dict):
        raise SchemaError(
            f"Transaction #{index} is not an object",
            details={"index": index, "type": type(raw).__name__}
        )

    monto = clean_amount(raw.get("monto"))
    if monto is None:
        raise SchemaError(
            f"Transaction #{index} has no valid amount",
            details={"index": index, "monto": repr(raw.get("monto"))[:50]}
        )

    descripcion = raw.get("descripcion")
    descripcion = descripcion.strip() if isinstance(descripcion, str) else ""

    categoria = match_category(raw.get("categoria"))
    if categoria is None and strict_categories:
        raise SchemaError(
            f"Transaction #{index} has an unknown category",
            details={"index": index, "categoria": repr(raw.get("categoria"))[:50]}
        )

    if not descripcion:
        logger.warning(f"Transaction #{index} has no description, using '{FALLBACK_CATEGORY}'")
        descripcion = MISSING_DESCRIPTION
        categoria = FALLBACK_CATEGORY
    elif categoria is None:
        logger.warning(
            f"Transaction #{index} has unknown category "
            f"'{preview(str(raw.get('categoria')), 40)}', using '{FALLBACK_CATEGORY}'"
        )
        categoria = FALLBACK_CATEGORY
    elif categoria == INCOME_CATEGORY and monto < 0:
        logger.warning(f"Transaction #{index} is an expense labelled as income, using '{FALLBACK_CATEGORY}'")
        categoria = FALLBACK_CATEGORY

    return Movimiento(
        fecha=normalize_date(raw.get("fecha")),
        descripcion=descripcion,
        categoria=categoria,
        monto=monto,
    )


def parse_analysis(
    text: str,
    strict_categories: bool = False,
    tolerance: float = 0.02
) -> AnalisisResultado:
    """
    Parse and validate a cleaned categorization response.

    Rules, in order: the text must be JSON; the top-level object must hold
    a "movimientos" list and a "resumen" object; every transaction is
    normalized; the reported totals must be finite numbers. Totals are then
    recomputed locally and mismatches recorded as warnings.

    Args:
        text: Response text with code fences already removed
        strict_categories: Reject unknown categories instead of coercing them
        tolerance: Allowed difference between reported and computed totals

    Returns:
        Canonical AnalisisResultado

    Raises:
        MalformedResponseError: If the text is not valid JSON
        SchemaError: If the document does not have the expected shape
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Response is not valid JSON: {e}. Start: {preview(text)}")
        raise MalformedResponseError(
            "Categorization response is not valid JSON",
            details={"error": str(e), "length": len(text or "")}
        )

    if not isinstance(data, dict):
        raise SchemaError(
            "Categorization response is not a JSON object",
            details={"type": type(data).__name__}
        )

    raw_movimientos = data.get("movimientos")
    raw_resumen = data.get("resumen")
    missing = [
        key for key, value, expected in (
            ("movimientos", raw_movimientos, list),
            ("resumen", raw_resumen, dict),
        )
        if not isinstance(value, expected)
    ]
    if missing:
        raise SchemaError(
            "Categorization response does not have the expected structure",
            details={"missing": missing, "keys": sorted(data.keys())}
        )

    movimientos: List[Movimiento] = [
        normalize_movimiento(raw, idx, strict_categories)
        for idx, raw in enumerate(raw_movimientos)
    ]

    bad_fields = [f for f in SUMMARY_FIELDS if not _is_finite_number(raw_resumen.get(f))]
    if bad_fields:
        raise SchemaError(
            "Summary totals must be finite numbers",
            details={"fields": bad_fields}
        )

    resumen = compute_summary(movimientos)
    advertencias = cross_check(raw_resumen, resumen, tolerance)

    try:
        result = AnalisisResultado(
            movimientos=movimientos,
            resumen=resumen,
            moneda=data.get("moneda"),
            advertencias=advertencias,
        )
    except PydanticValidationError as e:
        raise SchemaError(
            "Categorization response failed schema validation",
            details={"errors": e.errors(include_url=False, include_input=False, include_context=False)}
        )

    logger.info(
        f"Validated analysis: {len(result.movimientos)} transactions, "
        f"{len(result.resumen.por_categoria)} expense categories, "
        f"{len(advertencias)} warnings"
    )
    return result


def parse_result_payload(payload: Optional[Dict[str, Any]]) -> AnalisisResultado:
    """
    Validate a canonical result sent back by the caller for a download.

    Raises:
        ValidationError: If the payload does not match the canonical shape
    """
    if not isinstance(payload, dict) or "movimientos" not in payload or "resumen" not in payload:
        raise ValidationError(
            "Datos de análisis inválidos.",
            details={"reason": "missing movimientos or resumen"}
        )
    try:
        return AnalisisResultado.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Datos de análisis inválidos.",
            details={"errors": e.errors(include_url=False, include_input=False, include_context=False)}
        )
