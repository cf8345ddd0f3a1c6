import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from conftest import SCENARIO_CSV, make_workbook
from fainatic.core.exceptions import (
    InvalidFileContentError,
    MissingRequiredColumnError,
    NoValidRecordsError,
)
from fainatic.schemas.transaction import Category
from fainatic.services.tabular_parser import TabularParser, decode_csv, detect_delimiter


@pytest.fixture
def parser(settings):
    return TabularParser(settings)


def test_delimiter_detection():
    assert detect_delimiter("date,amount\n") == ","
    assert detect_delimiter("\n\ndate;amount\n") == ";"
    assert detect_delimiter("date\tamount\n") == "\t"
    assert detect_delimiter("date amount\n") == ","


def test_decode_falls_back_from_utf8():
    assert decode_csv("Café".encode("cp1252")) == "Café"
    assert decode_csv("\ufeffdate".encode("utf-8")) == "date"


def test_scenario_csv(parser):
    transactions = parser.parse_csv(SCENARIO_CSV)

    assert len(transactions) == 2
    uber, salary = transactions
    assert uber.date == date(2024, 1, 5)
    assert uber.amount == Decimal("-42.50")
    assert uber.currency == "USD"
    assert uber.counterparty == "Uber ride"
    assert uber.category is Category.TRANSPORT
    assert salary.amount == Decimal("3000")
    assert salary.category is Category.INCOME


def test_semicolon_and_tab_delimited(parser):
    semicolon = parser.parse_csv(b"Date;Description;Amount\n2024-01-05;Coffee;-3.50\n")
    tab = parser.parse_csv(b"Date\tDescription\tAmount\n2024-01-05\tCoffee\t-3.50\n")
    assert semicolon[0].amount == tab[0].amount == Decimal("-3.50")


def test_header_only_csv_has_no_valid_records(parser):
    with pytest.raises(NoValidRecordsError) as exc_info:
        parser.parse_csv(b"date,amount\n")
    assert exc_info.value.error_code == "NO_VALID_RECORDS"


def test_missing_columns_abort_the_parse(parser):
    with pytest.raises(MissingRequiredColumnError) as exc_info:
        parser.parse_csv(b"when,what\n2024-01-05,Coffee\n")
    assert exc_info.value.details == "DATE_COLUMN_NOT_FOUND"


def test_bad_rows_are_dropped_and_logged(parser, caplog):
    content = (
        b"Date,Description,Amount\n"
        b"2024-01-05,Coffee,-3.50\n"
        b"not a date,Bad date,-1.00\n"
        b"2024-01-06,Bad amount,abc\n"
        b",Missing date,5.00\n"
    )
    with caplog.at_level(logging.WARNING):
        transactions = parser.parse_csv(content)

    assert [t.counterparty for t in transactions] == ["Coffee"]
    assert "DATE_PARSE_FAILURE" in caplog.text
    assert "AMOUNT_PARSE_FAILURE" in caplog.text


def test_out_of_range_amount_row_is_dropped(parser, caplog):
    content = (
        b"date,amount,description\n"
        b"2024-01-05,-100000000000000000000000000000,Typo\n"
        b"2024-01-06,5.00,Refund\n"
    )
    with caplog.at_level(logging.WARNING):
        transactions = parser.parse_csv(content)

    assert [t.counterparty for t in transactions] == ["Refund"]
    assert "AMOUNT_PARSE_FAILURE" in caplog.text


def test_debit_and_credit_columns(parser):
    content = (
        b"Date,Description,Debit,Credit\n"
        b"2024-01-05,Coffee,3.50,\n"
        b"2024-01-06,Salary,,1000.00\n"
        b"2024-01-07,Nothing,,\n"
    )
    transactions = parser.parse_csv(content)

    assert [t.amount for t in transactions] == [Decimal("-3.50"), Decimal("1000.00")]


def test_preamble_before_header(parser):
    content = (
        b"Account Statement\n"
        b"Account: 12345\n"
        b"\n"
        b"Date,Description,Amount\n"
        b"2024-02-01,Coffee,-3.50\n"
    )
    transactions = parser.parse_csv(content)
    assert transactions[0].date == date(2024, 2, 1)


def test_repeated_header_starts_a_new_block(parser):
    content = (
        b"Date,Description,Amount\n"
        b"2024-01-05,Coffee,-3.50\n"
        b"Date,Amount,Description\n"
        b"2024-01-06,-20.00,Corner shop\n"
    )
    transactions = parser.parse_csv(content)

    assert len(transactions) == 2
    assert transactions[1].amount == Decimal("-20.00")
    assert transactions[1].counterparty == "Corner shop"


def test_single_sampled_currency_becomes_file_default(parser):
    content = "Date,Description,Amount\n2024-01-05,Coffee,-€3.50\n2024-01-06,Lunch,-€12.00\n".encode("utf-8")
    transactions = parser.parse_csv(content)
    assert {t.currency for t in transactions} == {"EUR"}


def test_mixed_sampled_currencies_leave_currency_unset(parser):
    content = "Date,Description,Amount\n2024-01-05,Coffee,-$3.50\n2024-01-06,Lunch,-€12.00\n".encode("utf-8")
    transactions = parser.parse_csv(content)
    assert {t.currency for t in transactions} == {None}


def test_currency_column_symbols_become_codes(parser):
    content = "Date,Amount,Currency,Description\n2024-01-05,-3.50,€,Coffee\n2024-01-06,-2.00,gbp,Tea\n".encode("utf-8")
    transactions = parser.parse_csv(content)
    assert [t.currency for t in transactions] == ["EUR", "GBP"]


def test_excel_native_dates_and_bad_amount_row(parser):
    content = make_workbook({
        "Transactions": [
            ["Date", "Description", "Amount"],
            [datetime(2024, 3, 1), "Monthly rent", -1200.0],
            [datetime(2024, 3, 2), "Broken row", "abc"],
            [datetime(2024, 3, 3), "Salary", 2500],
        ],
    })
    transactions = parser.parse_excel(content)

    assert len(transactions) == 2
    rent, salary = transactions
    assert rent.date == date(2024, 3, 1)
    assert rent.amount == Decimal("-1200")
    assert rent.category is Category.HOUSING
    assert salary.amount == Decimal("2500")


def test_excel_uses_first_sheet_with_a_header(parser):
    content = make_workbook({
        "Summary": [["Account overview"], ["Balance", 100]],
        "Transactions": [
            ["Posted Date", "Details", "Withdrawal", "Deposit"],
            ["2024-03-01", "Cafe", 4.5, None],
        ],
    })
    transactions = parser.parse_excel(content)

    assert len(transactions) == 1
    assert transactions[0].amount == Decimal("-4.5")
    assert transactions[0].category is Category.FOOD


def test_excel_without_any_header(parser):
    content = make_workbook({"Sheet": [["Account overview"], ["Balance", 100]]})
    with pytest.raises(MissingRequiredColumnError):
        parser.parse_excel(content)


def test_corrupt_excel(parser):
    with pytest.raises(InvalidFileContentError):
        parser.parse_excel(b"definitely not a workbook")
