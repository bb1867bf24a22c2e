"""Export extraction results.

Flattens ExtractionResults into a pandas DataFrame, one row per item, and
writes it as CSV, Excel (openpyxl engine) or JSON.
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pandas as pd

from stmtextract.core.money import Money, UnitType
from stmtextract.parsers.items import (
    ExtractionResult,
    Item,
    NonImportableItem,
    Rejection,
)

logger = logging.getLogger(__name__)

COLUMNS = [
    "document",
    "extractor",
    "rule_set",
    "line",
    "kind",
    "type",
    "date",
    "security",
    "isin",
    "wkn",
    "shares",
    "amount",
    "currency",
    "gross",
    "taxes",
    "fees",
    "note",
    "message",
]


# Exact decimal columns, never written as binary floats
DECIMAL_COLUMNS = ["shares", "amount", "gross", "taxes", "fees"]


def _decimal(money: Money) -> Decimal:
    return money.to_decimal()


def _as_text(df: pd.DataFrame) -> pd.DataFrame:
    """Copy of ``df`` with decimal columns as strings, for JSON."""
    df = df.copy()
    for column in DECIMAL_COLUMNS:
        df[column] = df[column].map(lambda value: None if pd.isna(value) else str(value))
    return df


def _transaction_columns(transaction) -> Dict[str, Any]:
    """Columns describing an account entry or transfer entry."""
    if transaction is None:
        return {}

    row: Dict[str, Any] = {
        "type": transaction.type.value if transaction.type else None,
        "date": transaction.date_time.isoformat() if transaction.date_time else None,
        "shares": transaction.shares if transaction.shares else None,
        "note": transaction.note,
    }

    security = transaction.security
    if security is not None:
        row.update(security=security.name, isin=security.isin, wkn=security.wkn)

    if transaction.currency_code:
        row.update(
            amount=_decimal(transaction.monetary_amount),
            currency=transaction.currency_code,
            gross=_decimal(transaction.gross_value()),
            taxes=_decimal(transaction.unit_sum(UnitType.TAX)),
            fees=_decimal(transaction.unit_sum(UnitType.FEE)),
        )
    return row


def item_to_row(document_name: str, item: Item) -> Dict[str, Any]:
    """Flatten one item into a row keyed by COLUMNS."""
    row: Dict[str, Any] = dict.fromkeys(COLUMNS)
    row.update(
        document=document_name,
        extractor=item.source.extractor,
        rule_set=item.source.rule_set,
        line=item.source.line_index,
    )

    if isinstance(item, Rejection):
        row.update(kind="REJECTED", type=item.kind.value, message=item.message)
    elif isinstance(item, NonImportableItem):
        row.update(_transaction_columns(item.transaction))
        row.update(kind="NOT_IMPORTABLE", message=item.reason)
    else:
        row.update(_transaction_columns(item.transaction))
        row["kind"] = item.transaction.kind.value
    return row


def results_to_dataframe(results: Iterable[ExtractionResult],
                         include_rejections: bool = True) -> pd.DataFrame:
    """
    Build a DataFrame with one row per extracted item.

    Args:
        results: Extraction results
        include_rejections: Whether failed block runs appear as rows

    Returns:
        DataFrame with COLUMNS
    """
    rows: List[Dict[str, Any]] = []
    for result in results:
        for item in result.items:
            if isinstance(item, Rejection) and not include_rejections:
                continue
            rows.append(item_to_row(result.document_name, item))

    return pd.DataFrame(rows, columns=COLUMNS)


def export_results(results: Iterable[ExtractionResult], output_path: Path,
                   fmt: str = None, include_rejections: bool = True) -> Path:
    """
    Write extraction results to a file.

    Args:
        results: Extraction results
        output_path: Target file
        fmt: csv, xlsx or json; defaults to the file suffix
        include_rejections: Whether failed block runs are written

    Returns:
        Path to the written file
    """
    results = list(results)
    output_path = Path(output_path)
    fmt = (fmt or output_path.suffix.lstrip(".") or "csv").lower()

    df = results_to_dataframe(results, include_rejections=include_rejections)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "csv":
        df.to_csv(output_path, index=False)
    elif fmt == "xlsx":
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Transactions", index=False)

            errors = [
                {"document": result.document_name, "error": error}
                for result in results for error in result.errors
            ]
            if errors:
                pd.DataFrame(errors).to_excel(writer, sheet_name="Errors", index=False)
    elif fmt == "json":
        _as_text(df).to_json(output_path, orient="records", indent=2, force_ascii=False)
    else:
        raise ValueError(f"Unsupported export format: {fmt}")

    logger.info(f"Exported {len(df)} row(s) to {output_path}")
    return output_path
