"""
CSV export of dashboard datasets (orders, products, customers).
"""
import csv
import io
import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from app.services.dashboard_service import DashboardMetrics

# (header, key) pairs per exportable dataset
EXPORT_COLUMNS: Dict[str, List[Tuple[str, str]]] = {
    "orders": [
        ("Order ID", "id"),
        ("Order Date", "order_date"),
        ("Total Amount", "total_amount"),
        ("Status", "status"),
        ("Customer ID", "customer_id"),
        ("Items", "items"),
    ],
    "products": [
        ("Product ID", "id"),
        ("Name", "name"),
        ("Images", "image_urls"),
    ],
    "customers": [
        ("Customer ID", "id"),
        ("First Name", "first_name"),
        ("Last Name", "last_name"),
        ("Email", "email"),
    ],
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return str(value)


def to_csv(rows: List[Dict[str, Any]], columns: Optional[List[Tuple[str, str]]] = None) -> str:
    """
    Render rows as CSV text with every cell quoted.

    Without ``columns`` the header is the keys of the first row. Nested
    lists/dicts are written as JSON. No rows -> empty string.
    """
    if not rows:
        return ""

    headers = [header for header, _ in columns] if columns else list(rows[0].keys())
    keys = [key for _, key in columns] if columns else list(rows[0].keys())

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(row.get(key)) for key in keys])
    return buffer.getvalue()


def dataset_rows(metrics: DashboardMetrics, dataset: str) -> List[Dict[str, Any]]:
    """Rows for one of the EXPORT_COLUMNS datasets; KeyError for unknown names"""
    records = {
        "orders": metrics.all_orders,
        "products": metrics.all_products,
        "customers": metrics.all_profiles,
    }[dataset]
    return [asdict(r) if is_dataclass(r) else dict(r) for r in records]


def export_dataset(metrics: DashboardMetrics, dataset: str) -> str:
    return to_csv(dataset_rows(metrics, dataset), EXPORT_COLUMNS[dataset])
