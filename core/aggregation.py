"""
Totals and per-category breakdown for a list of transactions.
Figures are recomputed locally and cross-checked against the ones
reported by the categorization service.
"""
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Sequence

from core.logger import setup_logger
from core.schema import CATEGORY_ORDER, CategoriaResumen, Movimiento, Resumen, match_category

logger = setup_logger(__name__)

CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(value))


def _money(value: Decimal) -> float:
    return float(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def _exceeds(reported: float, computed: float, tolerance: float) -> bool:
    """Compare in Decimal so a difference equal to the tolerance is accepted."""
    return abs(_to_decimal(reported) - _to_decimal(computed)) > _to_decimal(tolerance)


def compute_summary(movimientos: Sequence[Movimiento]) -> Resumen:
    """
    Compute totals and the per-category expense breakdown.

    Income is the sum of non-negative amounts, expense the sum of negative
    ones. Categories without expense transactions are left out. The
    breakdown is ordered by descending absolute total, ties by category order.

    Args:
        movimientos: Canonical transactions

    Returns:
        Resumen whose balance is the decimal sum of total_ingresos and total_gastos
    """
    income = Decimal("0")
    expense = Decimal("0")
    per_category: Dict[str, Decimal] = defaultdict(Decimal)

    for mov in movimientos:
        amount = _to_decimal(mov.monto)
        if amount >= 0:
            income += amount
        else:
            expense += amount
            per_category[mov.categoria] += amount

    total_ingresos = _money(income)
    total_gastos = _money(expense)
    expense_magnitude = -expense

    ordered = sorted(
        per_category.items(),
        key=lambda item: (-abs(item[1]), CATEGORY_ORDER[item[0]])
    )

    por_categoria = []
    for name, total in ordered:
        share = abs(total) / expense_magnitude * 100
        por_categoria.append(CategoriaResumen(
            categoria=name,
            total=_money(total),
            porcentaje=float(share.quantize(TENTHS, rounding=ROUND_HALF_UP)),
        ))

    return Resumen(
        total_ingresos=total_ingresos,
        total_gastos=total_gastos,
        balance=_money(_to_decimal(total_ingresos) + _to_decimal(total_gastos)),
        por_categoria=por_categoria,
    )


def cross_check(
    reported: Mapping[str, Any],
    computed: Resumen,
    tolerance: float = 0.02
) -> List[str]:
    """
    Compare the service-reported summary against the computed one.

    Differences beyond the tolerance are returned as warnings; they are
    never raised.

    Args:
        reported: Raw "resumen" object from the service (already validated numeric totals)
        computed: Locally computed summary
        tolerance: Allowed absolute difference per figure

    Returns:
        List of human-readable warnings (empty when everything matches)
    """
    warnings = []

    for field in ("total_ingresos", "total_gastos", "balance"):
        reported_value = float(reported[field])
        computed_value = getattr(computed, field)
        if _exceeds(reported_value, computed_value, tolerance):
            warnings.append(
                f"{field}: informado {reported_value:.2f}, calculado {computed_value:.2f}"
            )

    reported_categories: Dict[str, float] = defaultdict(float)
    raw_categories = reported.get("por_categoria")
    if isinstance(raw_categories, list):
        for item in raw_categories:
            if not isinstance(item, dict):
                continue
            name = match_category(item.get("categoria"))
            total = item.get("total")
            if name is None or isinstance(total, bool) or not isinstance(total, (int, float)):
                continue
            reported_categories[name] += float(total)

        computed_categories = {c.categoria: c.total for c in computed.por_categoria}
        for name in sorted(
            set(reported_categories) | set(computed_categories),
            key=lambda n: CATEGORY_ORDER[n]
        ):
            reported_value = reported_categories.get(name, 0.0)
            computed_value = computed_categories.get(name, 0.0)
            if _exceeds(reported_value, computed_value, tolerance):
                warnings.append(
                    f"{name}: informado {reported_value:.2f}, calculado {computed_value:.2f}"
                )

    for warning in warnings:
        logger.warning(f"Summary mismatch - {warning}")

    return warnings
