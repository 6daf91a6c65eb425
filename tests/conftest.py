"""
Shared fixtures: generated PDFs and canned categorization responses.
"""
import copy
import io
import json
import os
from typing import List

# Must be set before modules that read settings at import time
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import pytest
from pypdf import PdfWriter

from core.config import reset_settings


def build_pdf(pages: List[List[str]]) -> bytes:
    """
    Build a minimal text PDF; each page is a list of lines (ASCII, no parentheses).
    A page with no lines has an empty content stream.
    """
    bodies = {}
    page_ids = []
    next_id = 4
    for lines in pages:
        page_id, content_id = next_id, next_id + 1
        next_id += 2

        ops = []
        if lines:
            ops = ["BT", "/F1 12 Tf"]
            y = 720
            for line in lines:
                ops.append(f"1 0 0 1 72 {y} Tm ({line}) Tj")
                y -= 20
            ops.append("ET")
        stream = "\n".join(ops).encode("latin-1")

        bodies[content_id] = (
            b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream"
        )
        bodies[page_id] = (
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            "/Resources << /Font << /F1 3 0 R >> >> "
            f"/Contents {content_id} 0 R >>"
        ).encode("latin-1")
        page_ids.append(page_id)

    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)
    bodies[1] = b"<< /Type /Catalog /Pages 2 0 R >>"
    bodies[2] = f"<< /Type /Pages /Kids [{kids}] /Count {len(page_ids)} >>".encode("latin-1")
    bodies[3] = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"

    out = bytearray(b"%PDF-1.4\n")
    offsets = {}
    for obj_id in sorted(bodies):
        offsets[obj_id] = len(out)
        out += f"{obj_id} 0 obj\n".encode("latin-1") + bodies[obj_id] + b"\nendobj\n"

    xref_pos = len(out)
    size = max(bodies) + 1
    out += f"xref\n0 {size}\n".encode("latin-1")
    out += b"0000000000 65535 f \n"
    for obj_id in range(1, size):
        out += f"{offsets[obj_id]:010d} 00000 n \n".encode("latin-1")
    out += f"trailer\n<< /Size {size} /Root 1 0 R >>\nstartxref\n{xref_pos}\n%%EOF\n".encode("latin-1")
    return bytes(out)


def build_blank_pdf(pages: int = 1, password: str = None) -> bytes:
    """PDF with no text layer (like a scan), optionally password-protected."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    if password:
        writer.encrypt(password)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


# Ten transactions: income 50000.00, expenses -35000.00
SAMPLE_ANALYSIS = {
    "movimientos": [
        {"fecha": "01/03/2024", "descripcion": "SUELDO EMPRESA SA", "categoria": "Ingresos", "emoji": "💰", "monto": 50000.00},
        {"fecha": "02/03/2024", "descripcion": "ALQUILER MARZO", "categoria": "Vivienda", "emoji": "🏠", "monto": -15000.00},
        {"fecha": "03/03/2024", "descripcion": "UTE FACTURA", "categoria": "Vivienda", "emoji": "🏠", "monto": -2500.00},
        {"fecha": "05/03/2024", "descripcion": "TIENDA INGLESA", "categoria": "Supermercado", "emoji": "🛒", "monto": -8500.00},
        {"fecha": "07/03/2024", "descripcion": "PEDIDOSYA", "categoria": "Gastronomía", "emoji": "🍽️", "monto": -1500.00},
        {"fecha": "09/03/2024", "descripcion": "UBER TRIP", "categoria": "Transporte", "emoji": "🚗", "monto": -1200.00},
        {"fecha": "11/03/2024", "descripcion": "FARMACIA SAN ROQUE", "categoria": "Salud", "emoji": "💊", "monto": -800.00},
        {"fecha": "12/03/2024", "descripcion": "NETFLIX", "categoria": "Entretenimiento", "emoji": "🎬", "monto": -500.00},
        {"fecha": "15/03/2024", "descripcion": "ZARA MONTEVIDEO", "categoria": "Ropa y Shopping", "emoji": "👕", "monto": -3000.00},
        {"fecha": "18/03/2024", "descripcion": "MONTEVIDEO SHOPPING", "categoria": "Ropa y Shopping", "emoji": "👕", "monto": -2000.00},
    ],
    "resumen": {
        "total_ingresos": 50000.00,
        "total_gastos": -35000.00,
        "balance": 15000.00,
        "por_categoria": [
            {"categoria": "🏠 Vivienda", "total": -17500.00, "porcentaje": 50.0},
            {"categoria": "🛒 Supermercado", "total": -8500.00, "porcentaje": 24.3},
            {"categoria": "👕 Ropa y Shopping", "total": -5000.00, "porcentaje": 14.3},
            {"categoria": "🍽️ Gastronomía", "total": -1500.00, "porcentaje": 4.3},
            {"categoria": "🚗 Transporte", "total": -1200.00, "porcentaje": 3.4},
            {"categoria": "💊 Salud", "total": -800.00, "porcentaje": 2.3},
            {"categoria": "🎬 Entretenimiento", "total": -500.00, "porcentaje": 1.4},
        ],
    },
    "moneda": "UYU",
}

STATEMENT_PAGES = [
    [
        "ESTADO DE CUENTA MARZO 2024",
        "01/03/2024 SUELDO EMPRESA SA 50000.00",
        "02/03/2024 ALQUILER MARZO -15000.00",
        "03/03/2024 UTE FACTURA -2500.00",
        "05/03/2024 TIENDA INGLESA -8500.00",
        "07/03/2024 PEDIDOSYA -1500.00",
    ],
    [
        "09/03/2024 UBER TRIP -1200.00",
        "11/03/2024 FARMACIA SAN ROQUE -800.00",
        "12/03/2024 NETFLIX -500.00",
        "15/03/2024 ZARA MONTEVIDEO -3000.00",
        "18/03/2024 MONTEVIDEO SHOPPING -2000.00",
    ],
]


def gemini_envelope(text: str) -> dict:
    """Wrap text the way generateContent returns it."""
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
        ],
        "usageMetadata": {"promptTokenCount": 100, "candidatesTokenCount": 50},
    }


@pytest.fixture(autouse=True)
def fresh_settings():
    """Every test sees settings built from its own environment."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_analysis():
    return copy.deepcopy(SAMPLE_ANALYSIS)


@pytest.fixture
def sample_json(sample_analysis):
    return json.dumps(sample_analysis, ensure_ascii=False)


@pytest.fixture
def statement_pdf():
    return build_pdf(STATEMENT_PAGES)
