import json
from datetime import datetime

import pytest

from statement_reconciler.errors import ExportFormatError, ExtractionError
from statement_reconciler.models import Direction, SourceAccountType
from statement_reconciler.normalizers.csv_export import parse_csv_export, parse_csv_rows
from statement_reconciler.normalizers.statements import (
    ExtractedTransaction,
    count_unknown_account_types,
    normalize_extracted,
    parse_extraction_output,
)

HEADER = '"Account Type","Account Number","Transaction Date","Cheque Number","Description 1","Description 2","CAD$","USD$"\n'
HEADER_ROW = ["Account Type", "Account Number", "Transaction Date", "Cheque Number", "Description 1", "Description 2", "CAD$", "USD$"]


@pytest.fixture
def write_csv(tmp_path):
    def _write(*rows: str) -> str:
        path = tmp_path / "export.csv"
        path.write_text(HEADER + "".join(rows), encoding="utf-8")
        return str(path)

    return _write


def test_csv_rows_are_normalized(write_csv):
    path = write_csv(
        'Chequing,05172-5163878,1/5/2024,,"PAYROLL","ACME CORP",1500.00,\n',
        'Visa,4510123456783802,01/20/2024,,"COFFEE",,-4.75,\n',
        'Savings,05172-1234567,2/1/2024,,"FX",,,"-1,250.50"\n',
    )

    transactions = parse_csv_export(path)

    assert len(transactions) == 3
    payroll, coffee, fx = transactions
    assert payroll.date == datetime(2024, 1, 5)
    assert payroll.direction == Direction.INCOMING
    assert payroll.amount == 1500.0
    assert payroll.description == "PAYROLL ACME CORP"
    assert payroll.source_account_type == SourceAccountType.CHEQUING
    assert payroll.source_account_name is None
    assert payroll.source_path == path

    assert coffee.source_account_type == SourceAccountType.CREDIT_CARD
    assert coffee.direction == Direction.OUTGOING
    assert coffee.amount == 4.75
    assert coffee.description == "COFFEE"

    assert fx.currency == "USD"
    assert fx.amount == 1250.50
    assert fx.direction == Direction.OUTGOING


def test_csv_zero_amount_rows_are_dropped(write_csv):
    path = write_csv(
        'Chequing,05172-5163878,1/5/2024,,"FEE WAIVED",,0.00,0.00\n',
        'Chequing,05172-5163878,1/6/2024,,"ATM",,-20.00,\n',
    )

    transactions = parse_csv_export(path)

    assert [tx.description for tx in transactions] == ["ATM"]


def test_csv_bad_rows_are_skipped(write_csv, caplog):
    path = write_csv(
        'Chequing,05172-5163878,2024-01-05,,"BAD DATE",,-1.00,\n',
        ',05172-5163878,1/5/2024,,"NO TYPE",,-1.00,\n',
        'Chequing,,1/5/2024,,"NO NUMBER",,-1.00,\n',
        'Chequing,05172-5163878,1/5/2024,,"NO AMOUNT",,,\n',
        'Chequing,05172-5163878,1/5/2024,,"BAD AMOUNT",,abc,\n',
        'Chequing,05172-5163878,1/5/2024,,,,-1.00,\n',
        'Brokerage,05172-5163878,1/5/2024,,"ODD TYPE",,-1.00,\n',
        'Chequing,05172-5163878,1/7/2024,,"GOOD",,-3.00,\n',
    )

    with caplog.at_level("WARNING"):
        transactions = parse_csv_export(path)

    assert [tx.description for tx in transactions] == ["GOOD"]
    assert "row 2" in caplog.text
    assert "invalid date format" in caplog.text
    assert caplog.text.count("Skipping row") == 7


@pytest.mark.parametrize("raw_amount", ["nan", "NaN", "inf", "-Infinity"])
def test_csv_non_finite_amount_row_is_skipped(raw_amount, caplog):
    rows = [
        HEADER_ROW,
        ["Chequing", "05172-5163878", "1/5/2024", "", "BROKEN", "", raw_amount, ""],
        ["Chequing", "05172-5163878", "1/6/2024", "", "LUNCH", "", "-12.50", ""],
    ]

    with caplog.at_level("WARNING"):
        transactions = parse_csv_rows(rows, "export.csv")

    assert [tx.description for tx in transactions] == ["LUNCH"]
    assert transactions[0].amount == 12.5
    assert "Skipping row 2: invalid CAD$ amount" in caplog.text


def test_csv_missing_column_is_fatal(tmp_path):
    path = tmp_path / "export.csv"
    path.write_text('"Account Type","Account Number"\nChequing,123\n', encoding="utf-8")

    with pytest.raises(ExportFormatError, match="missing required column"):
        parse_csv_export(str(path))


def test_csv_without_rows_is_fatal(tmp_path):
    path = tmp_path / "export.csv"
    path.write_text(HEADER, encoding="utf-8")

    with pytest.raises(ExportFormatError):
        parse_csv_export(str(path))


def _document(*transactions: dict) -> str:
    return json.dumps({
        "transactions": list(transactions),
        "file_results": [{"file": "/tmp/jan.pdf", "transaction_count": len(transactions), "processed": True}],
        "summary": {"total_files": 1, "processed_files": 1, "total_transactions": len(transactions)},
    })


def test_extraction_output_is_normalized():
    output = _document(
        {
            "date": "2024-01-15T00:00:00",
            "amount": -42.5,
            "description": "GROCERY",
            "account_number": "05172-5163878",
            "account_type": "chequing",
            "account_name": "RBC Day to Day Banking",
            "source_file": "/tmp/jan.pdf",
            "method": "debit",
            "category": None,
            "code": None,
            "posting_date": "2024-01-16",
        },
        {
            "date": "2024-01-16T00:00:00",
            "amount": 0.0,
            "description": "ZERO",
            "account_number": "05172-5163878",
            "account_type": "chequing",
            "account_name": "",
            "source_file": "/tmp/jan.pdf",
        },
        {
            "date": "2024-01-17T00:00:00",
            "amount": 100.0,
            "description": "PAYMENT THANK YOU",
            "account_number": None,
            "account_type": "visa",
            "account_name": "",
            "source_file": "/tmp/jan.pdf",
        },
    )

    result, transactions = parse_extraction_output(output)

    assert result.summary.total_transactions == 3
    assert len(transactions) == 2
    grocery, payment = transactions
    assert grocery.amount == 42.5
    assert grocery.direction == Direction.OUTGOING
    assert grocery.currency == "CAD"
    assert grocery.source_account_name == "RBC Day to Day Banking"
    assert payment.direction == Direction.INCOMING
    assert payment.source_account_type == SourceAccountType.CREDIT_CARD
    assert payment.source_account_number is None
    assert payment.source_account_name is None


def test_extraction_bad_date_is_fatal():
    output = _document({"date": "15/01/2024", "amount": 1.0, "account_type": "chequing"})

    with pytest.raises(ExtractionError, match="15/01/2024"):
        parse_extraction_output(output)


def test_extraction_invalid_json_is_fatal():
    with pytest.raises(ExtractionError):
        parse_extraction_output("Traceback (most recent call last): ...")


def test_extraction_non_finite_amount_is_fatal():
    extracted = [ExtractedTransaction(date="2024-01-15T00:00:00", amount=float("nan"), account_type="chequing")]

    with pytest.raises(ExtractionError, match="invalid amount"):
        normalize_extracted(extracted)


def test_extraction_nan_in_document_is_fatal():
    output = _document({"date": "2024-01-15T00:00:00", "amount": float("nan"), "account_type": "chequing"})

    with pytest.raises(ExtractionError):
        parse_extraction_output(output)


def test_unknown_account_types_are_counted():
    extracted = [
        ExtractedTransaction(date="2024-01-15T00:00:00", amount=-5.0, account_type="brokerage"),
        ExtractedTransaction(date="2024-01-15T00:00:00", amount=0.0, account_type="brokerage"),
        ExtractedTransaction(date="2024-01-15T00:00:00", amount=-5.0, account_type="chequing"),
    ]

    assert count_unknown_account_types(extracted) == 1
    assert len(normalize_extracted(extracted)) == 1
