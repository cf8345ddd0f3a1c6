import io
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import Workbook
from PIL import Image

from fainatic.core.config import Settings
from fainatic.schemas.transaction import Category, Transaction

SCENARIO_CSV = (
    b"date,amount,currency,description\n"
    b"2024-01-05,-42.50,USD,Uber ride\n"
    b"2024-01-10,3000,USD,Salary payment"
)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        OPENAI_API_KEY=None,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        DEFAULT_CURRENCY="USD",
        OCR_MAX_RETRIES=2,
        OCR_TIMEOUT_SECONDS=5.0,
        PARSE_TIMEOUT_SECONDS=10.0,
    )


@pytest.fixture
def scenario_transactions():
    return [
        Transaction(
            date=date(2024, 1, 5),
            amount=Decimal("-42.50"),
            currency="USD",
            counterparty="Uber ride",
            category=Category.TRANSPORT,
        ),
        Transaction(
            date=date(2024, 1, 10),
            amount=Decimal("3000"),
            currency="USD",
            counterparty="Salary payment",
            category=Category.INCOME,
        ),
    ]


def make_workbook(sheets: dict) -> bytes:
    """xlsx bytes with one worksheet per entry, rows appended in order"""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(name)
        for row in rows:
            worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def make_png(width: int = 60, height: int = 20) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()
