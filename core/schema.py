"""
Pydantic schemas for the canonical analysis result.
Defines the fixed category set and the JSON shape exchanged with the UI.
"""
import re
import unicodedata
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


# Ordered category set; the order breaks ties in the per-category summary.
CATEGORIES = (
    ("Vivienda", "🏠"),
    ("Supermercado", "🛒"),
    ("Gastronomía", "🍽️"),
    ("Transporte", "🚗"),
    ("Salud", "💊"),
    ("Educación", "📚"),
    ("Entretenimiento", "🎬"),
    ("Ropa y Shopping", "👕"),
    ("Ingresos", "💰"),
    ("Otros", "📦"),
)

CategoryName = Literal[
    "Vivienda",
    "Supermercado",
    "Gastronomía",
    "Transporte",
    "Salud",
    "Educación",
    "Entretenimiento",
    "Ropa y Shopping",
    "Ingresos",
    "Otros",
]

CATEGORY_EMOJI = dict(CATEGORIES)
CATEGORY_ORDER = {name: idx for idx, (name, _) in enumerate(CATEGORIES)}
INCOME_CATEGORY = "Ingresos"
FALLBACK_CATEGORY = "Otros"
DEFAULT_CURRENCY = "UYU"

INCOME_LABEL = "Ingreso"
EXPENSE_LABEL = "Gasto"

# English names the model sometimes answers with
CATEGORY_ALIASES = {
    "housing": "Vivienda",
    "supermarket": "Supermercado",
    "groceries": "Supermercado",
    "dining": "Gastronomía",
    "restaurants": "Gastronomía",
    "transport": "Transporte",
    "transportation": "Transporte",
    "health": "Salud",
    "education": "Educación",
    "entertainment": "Entretenimiento",
    "apparel": "Ropa y Shopping",
    "shopping": "Ropa y Shopping",
    "ropa": "Ropa y Shopping",
    "income": "Ingresos",
    "ingreso": "Ingresos",
    "other": "Otros",
    "otro": "Otros",
}


def _fold(value: str) -> str:
    """Lower-case, strip accents and collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", value)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(without_marks.casefold().split())


_FOLDED_CATEGORIES = {_fold(name): name for name, _ in CATEGORIES}
_LEADING_SYMBOLS = re.compile(r"^[^\w]+", re.UNICODE)


def match_category(value) -> Optional[str]:
    """
    Resolve a free-form category label to its canonical name.

    Accepts labels with a leading glyph ("🛒 Supermercado"), without accents
    ("Gastronomia") or in a different case.

    Args:
        value: Raw category label

    Returns:
        Canonical category name, or None if it does not match any category
    """
    if not isinstance(value, str):
        return None
    stripped = _LEADING_SYMBOLS.sub("", value.strip())
    folded = _fold(stripped)
    if not folded:
        return None
    if folded in _FOLDED_CATEGORIES:
        return _FOLDED_CATEGORIES[folded]
    return CATEGORY_ALIASES.get(folded)


def normalize_category(v):
    """Map a recognisable label to its canonical name, leave others for validation."""
    return match_category(v) or v


def normalize_currency(v):
    """Normalize currency to a 3-letter upper-case code, defaulting to UYU."""
    if isinstance(v, str):
        code = v.strip().upper()
        if len(code) == 3 and code.isalpha():
            return code
    return DEFAULT_CURRENCY


def category_label(name: str) -> str:
    """Display label with the category glyph, e.g. "🛒 Supermercado"."""
    return f"{CATEGORY_EMOJI.get(name, CATEGORY_EMOJI[FALLBACK_CATEGORY])} {name}"


class Movimiento(BaseModel):
    """A single statement transaction."""
    model_config = ConfigDict(frozen=True)

    fecha: str = Field(default="", description="Transaction date, DD/MM/YYYY")
    descripcion: str = Field(..., min_length=1, description="Original description")
    categoria: Annotated[CategoryName, BeforeValidator(normalize_category)]
    emoji: str = Field(default="", description="Glyph paired with the category")
    monto: float = Field(..., allow_inf_nan=False, description="Positive = income, negative = expense")

    @model_validator(mode="before")
    @classmethod
    def derive_emoji(cls, data):
        """The glyph is always taken from the category table."""
        if isinstance(data, dict):
            name = match_category(data.get("categoria"))
            if name:
                data = {**data, "emoji": CATEGORY_EMOJI[name]}
        return data

    @property
    def tipo(self) -> str:
        """Type label derived from the amount sign."""
        return INCOME_LABEL if self.monto >= 0 else EXPENSE_LABEL


class CategoriaResumen(BaseModel):
    """Expense total for one category."""
    model_config = ConfigDict(frozen=True)

    categoria: Annotated[CategoryName, BeforeValidator(normalize_category)]
    emoji: str = ""
    total: float = Field(..., allow_inf_nan=False)
    porcentaje: float = Field(..., ge=0.0, le=100.0, allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def derive_emoji(cls, data):
        if isinstance(data, dict):
            name = match_category(data.get("categoria"))
            if name:
                data = {**data, "emoji": CATEGORY_EMOJI[name]}
        return data


class Resumen(BaseModel):
    """Statement totals."""
    model_config = ConfigDict(frozen=True)

    total_ingresos: float = Field(..., ge=0.0, allow_inf_nan=False)
    total_gastos: float = Field(..., le=0.0, allow_inf_nan=False)
    balance: float = Field(..., allow_inf_nan=False)
    por_categoria: List[CategoriaResumen] = Field(default_factory=list)


class AnalisisResultado(BaseModel):
    """
    Canonical analysis result.
    Built once per upload, returned to the caller and fed to the report renderer.
    """
    model_config = ConfigDict(frozen=True)

    movimientos: List[Movimiento] = Field(default_factory=list)
    resumen: Resumen
    moneda: Annotated[str, BeforeValidator(normalize_currency)] = DEFAULT_CURRENCY
    advertencias: List[str] = Field(
        default_factory=list,
        description="Cross-check warnings between reported and computed totals"
    )
