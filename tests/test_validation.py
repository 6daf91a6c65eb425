"""
Unit tests for categorization response validation and normalization.
"""
import json

import pytest

from core.exceptions import MalformedResponseError, SchemaError, ValidationError
from core.schema import CATEGORY_EMOJI
from core.validation import MISSING_DESCRIPTION, normalize_movimiento, parse_analysis, parse_result_payload
from llm.client import clean_response_text


def dumps(data):
    return json.dumps(data, ensure_ascii=False)


def test_valid_response(sample_json):
    """A well-formed answer becomes a canonical result."""
    result = parse_analysis(sample_json)
    assert len(result.movimientos) == 10
    assert result.moneda == "UYU"
    assert result.resumen.total_ingresos == 50000.00
    assert result.resumen.total_gastos == -35000.00
    assert result.resumen.balance == 15000.00
    assert result.advertencias == []


def test_document_order_is_kept(sample_analysis, sample_json):
    """Transactions keep the order they had in the response."""
    result = parse_analysis(sample_json)
    expected = [m["descripcion"] for m in sample_analysis["movimientos"]]
    assert [m.descripcion for m in result.movimientos] == expected


def test_fenced_response_matches_plain(sample_json):
    """A ```json fenced answer validates identically to the bare JSON."""
    plain = parse_analysis(clean_response_text(sample_json))
    fenced = parse_analysis(clean_response_text(f"```json\n{sample_json}\n```"))
    prose = parse_analysis(clean_response_text(f"Here is the result: ```json {sample_json} ```"))
    assert plain == fenced == prose


@pytest.mark.parametrize("text", ["not json at all", "", "{'single': 'quotes'}", '{"movimientos": ['])
def test_non_json_is_malformed(text):
    """Anything that does not parse is a malformed response."""
    with pytest.raises(MalformedResponseError):
        parse_analysis(text)


@pytest.mark.parametrize("missing", ["movimientos", "resumen"])
def test_missing_top_level_key_is_schema_error(sample_analysis, missing):
    """Both the transaction list and the summary are required."""
    del sample_analysis[missing]
    with pytest.raises(SchemaError) as exc_info:
        parse_analysis(dumps(sample_analysis))
    assert missing in exc_info.value.details["missing"]


def test_wrong_top_level_type_is_schema_error():
    """A JSON array is valid JSON but the wrong shape."""
    with pytest.raises(SchemaError):
        parse_analysis("[1, 2, 3]")


def test_movimientos_not_a_list_is_schema_error(sample_analysis):
    sample_analysis["movimientos"] = {"fecha": "01/03/2024"}
    with pytest.raises(SchemaError):
        parse_analysis(dumps(sample_analysis))


@pytest.mark.parametrize("field", ["total_ingresos", "total_gastos", "balance"])
@pytest.mark.parametrize("value", ["NaN", "Infinity", '"15000"', "null"])
def test_non_finite_summary_is_schema_error(sample_json, field, value):
    """Summary figures must be finite numbers."""
    data = json.loads(sample_json)
    data["resumen"][field] = "__PLACEHOLDER__"
    text = dumps(data).replace('"__PLACEHOLDER__"', value)
    with pytest.raises(SchemaError) as exc_info:
        parse_analysis(text)
    assert field in exc_info.value.details["fields"]


def test_unknown_category_is_coerced_to_otros():
    """Unknown categories fall back to Otros instead of failing the document."""
    mov = normalize_movimiento(
        {"fecha": "01/03/2024", "descripcion": "KIOSCO", "categoria": "Mascotas", "monto": -100},
        0
    )
    assert mov.categoria == "Otros"
    assert mov.emoji == CATEGORY_EMOJI["Otros"]


def test_unknown_category_rejected_when_strict():
    """Strict mode turns unknown categories into a schema error."""
    with pytest.raises(SchemaError):
        normalize_movimiento(
            {"descripcion": "KIOSCO", "categoria": "Mascotas", "monto": -100},
            3,
            strict_categories=True
        )


def test_empty_description_is_coerced():
    """Blank descriptions get a placeholder and the fallback category."""
    mov = normalize_movimiento({"descripcion": "   ", "categoria": "Salud", "monto": -50}, 0)
    assert mov.descripcion == MISSING_DESCRIPTION
    assert mov.categoria == "Otros"


@pytest.mark.parametrize("label,expected", [
    ("🛒 Supermercado", "Supermercado"),
    ("gastronomia", "Gastronomía"),
    ("EDUCACIÓN", "Educación"),
    ("ropa y shopping", "Ropa y Shopping"),
    ("Transport", "Transporte"),
    ("📦 Otros", "Otros"),
])
def test_category_labels_are_matched(label, expected):
    """Labels with glyphs, without accents or in English resolve to the canonical name."""
    mov = normalize_movimiento({"descripcion": "X", "categoria": label, "monto": -1}, 0)
    assert mov.categoria == expected


def test_emoji_comes_from_category_table():
    """A wrong glyph from the service is replaced."""
    mov = normalize_movimiento(
        {"descripcion": "DISCO", "categoria": "Supermercado", "emoji": "🚀", "monto": -10}, 0
    )
    assert mov.emoji == "🛒"


def test_negative_income_is_recategorized():
    """An expense cannot be labelled as income."""
    mov = normalize_movimiento({"descripcion": "AJUSTE", "categoria": "Ingresos", "monto": -10}, 0)
    assert mov.categoria == "Otros"
    assert mov.tipo == "Gasto"


@pytest.mark.parametrize("raw,expected", [
    ("-1.234,56", -1234.56),
    ("$ 1,234.56", 1234.56),
    ("(350.00)", -350.0),
    (-99, -99.0),
])
def test_string_amounts_are_parsed(raw, expected):
    mov = normalize_movimiento({"descripcion": "X", "categoria": "Otros", "monto": raw}, 0)
    assert mov.monto == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "abc", True, {"value": 1}])
def test_unusable_amount_is_schema_error(raw):
    """Amounts cannot be coerced; the document is rejected."""
    with pytest.raises(SchemaError):
        normalize_movimiento({"descripcion": "X", "categoria": "Otros", "monto": raw}, 0)


def test_non_object_transaction_is_schema_error(sample_analysis):
    sample_analysis["movimientos"].append("SUELDO 1000")
    with pytest.raises(SchemaError):
        parse_analysis(dumps(sample_analysis))


def test_iso_dates_are_normalized():
    mov = normalize_movimiento({"fecha": "2024-03-05", "descripcion": "X", "categoria": "Otros", "monto": 1}, 0)
    assert mov.fecha == "05/03/2024"


@pytest.mark.parametrize("moneda,expected", [(None, "UYU"), ("usd", "USD"), ("pesos", "UYU"), (12, "UYU")])
def test_currency_is_normalized(sample_analysis, moneda, expected):
    if moneda is None:
        del sample_analysis["moneda"]
    else:
        sample_analysis["moneda"] = moneda
    assert parse_analysis(dumps(sample_analysis)).moneda == expected


def test_reported_totals_mismatch_is_a_warning(sample_analysis):
    """Wrong service totals are replaced by computed ones and reported."""
    sample_analysis["resumen"]["total_gastos"] = -34000.00
    sample_analysis["resumen"]["balance"] = 16000.00
    result = parse_analysis(dumps(sample_analysis))
    assert result.resumen.total_gastos == -35000.00
    assert result.resumen.balance == 15000.00
    assert len(result.advertencias) == 2
    assert any("total_gastos" in w for w in result.advertencias)


def test_small_rounding_difference_is_tolerated(sample_analysis):
    sample_analysis["resumen"]["por_categoria"][0]["total"] = -17500.01
    result = parse_analysis(dumps(sample_analysis))
    assert result.advertencias == []


def test_category_mismatch_is_a_warning(sample_analysis):
    sample_analysis["resumen"]["por_categoria"][1]["total"] = -9000.00
    result = parse_analysis(dumps(sample_analysis))
    assert result.advertencias == ["Supermercado: informado -9000.00, calculado -8500.00"]


def test_empty_transaction_list_is_valid():
    """No transactions is a usable, if empty, result."""
    text = dumps({"movimientos": [], "resumen": {"total_ingresos": 0, "total_gastos": 0, "balance": 0}})
    result = parse_analysis(text)
    assert result.movimientos == []
    assert result.resumen.por_categoria == []


def test_parse_result_payload_round_trip(sample_json):
    """A result returned to the UI is accepted back for download."""
    result = parse_analysis(sample_json)
    assert parse_result_payload(result.model_dump(mode="json")) == result


@pytest.mark.parametrize("payload", [None, {}, {"movimientos": []}, {"movimientos": "x", "resumen": {}}])
def test_parse_result_payload_rejects_invalid(payload):
    with pytest.raises(ValidationError):
        parse_result_payload(payload)
