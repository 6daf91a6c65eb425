"""
Instruction text sent to Gemini with every statement.
The text is a versioned constant; bump PROMPT_VERSION when it changes.
"""
import base64
from typing import Any, Dict, List

from core.extraction import PDF_MEDIA_TYPE, StatementPayload

PROMPT_VERSION = "2025-01-v1"

SYSTEM_PROMPT = """Sos un asistente financiero experto en Uruguay. Te voy a dar un estado de cuenta bancario o de tarjeta de crédito de Uruguay.

Tu tarea es:
1. Identificar cada movimiento/transacción, en el orden en que aparecen en el documento
2. Extraer: fecha (DD/MM/AAAA), descripción original, monto (positivo = ingreso, negativo = gasto)
3. Categorizar cada movimiento en una de estas categorías (usá el nombre exacto):
   - 🏠 Vivienda (alquiler, gastos comunes, UTE, OSE, Antel)
   - 🛒 Supermercado (Tienda Inglesa, Disco, Tata, Devoto, etc.)
   - 🍽️ Gastronomía (restaurantes, delivery, PedidosYa, Rappi)
   - 🚗 Transporte (combustible, Uber, STM, peajes)
   - 💊 Salud (mutualista, farmacia, médicos)
   - 📚 Educación (cursos, universidad, colegios)
   - 🎬 Entretenimiento (streaming, cine, salidas)
   - 👕 Ropa y Shopping
   - 💰 Ingresos (sueldos, transferencias recibidas)
   - 📦 Otros

4. Devolvé ÚNICAMENTE un JSON válido con esta estructura exacta, sin markdown, sin explicaciones:
{
  "movimientos": [
    {
      "fecha": "DD/MM/AAAA",
      "descripcion": "descripción original",
      "categoria": "nombre de categoría",
      "emoji": "emoji de la categoría",
      "monto": -1234.56
    }
  ],
  "resumen": {
    "total_ingresos": 50000.00,
    "total_gastos": -35000.00,
    "balance": 15000.00,
    "por_categoria": [
      {"categoria": "Supermercado", "total": -8500.00, "porcentaje": 24.3}
    ]
  },
  "moneda": "UYU"
}

IMPORTANTE: Respondé SOLO con el JSON, sin backticks, sin texto adicional. Los montos son números, no texto.
"""

TEXT_INTRO = "Acá está el texto del estado de cuenta:\n"
PDF_INTRO = "El estado de cuenta está en el PDF adjunto."


def build_request_parts(payload: StatementPayload) -> List[Dict[str, Any]]:
    """
    Build the content parts for one categorization request.

    Text mode sends a single text part (instruction followed by the
    statement text). Passthrough mode sends the instruction and the PDF
    as inline data.

    Args:
        payload: Prepared statement payload

    Returns:
        List of Gemini content parts
    """
    if payload.is_passthrough:
        return [
            {"text": SYSTEM_PROMPT + PDF_INTRO},
            {
                "inline_data": {
                    "mime_type": PDF_MEDIA_TYPE,
                    "data": base64.b64encode(payload.pdf_bytes).decode("ascii"),
                }
            },
        ]

    return [{"text": SYSTEM_PROMPT + TEXT_INTRO + (payload.text or "")}]
