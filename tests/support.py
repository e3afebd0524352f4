"""
Test doubles and CSV builders shared across test modules.
"""
from concurrent.futures import Future
from datetime import date, timedelta
from src.models.import_request import DateRange, ImportRequest
from src.repositories.db_repository import BatchResult

CSV_HEADER = "location,propertyType,averagePrice,medianPrice,salesVolume,recordDate"


class InlineTaskExecutor:
    """Runs submitted tasks immediately on the calling thread."""

    def submit(self, task, *args, **kwargs):
        future = Future()
        try:
            result = task(*args, **kwargs)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future


class DeferredTaskExecutor:
    """Holds submitted tasks until run_all, so jobs can be observed while pending."""

    def __init__(self):
        self.pending = []

    def submit(self, task, *args, **kwargs):
        future = Future()
        self.pending.append((future, task, args, kwargs))
        return future

    def run_all(self):
        while self.pending:
            future, task, args, kwargs = self.pending.pop(0)
            try:
                future.set_result(task(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)


def write_everything(entities, overwrite):
    return BatchResult(success_count=len(entities))


def build_csv(count, overrides=None, header=CSV_HEADER):
    """
    Build a CSV payload of count valid rows.

    overrides maps a 1-based row number to a dict of column values to replace.
    """
    overrides = overrides or {}
    columns = header.split(",")
    lines = [header]
    for number in range(1, count + 1):
        row = {
            "location": f"Area{number}",
            "propertyType": "flat",
            "averagePrice": f"{200000 + number}.50",
            "medianPrice": "195000",
            "salesVolume": "12",
            "recordDate": (date(2024, 1, 1) + timedelta(days=number % 28)).isoformat()
        }
        row.update(overrides.get(number, {}))
        lines.append(",".join(row.get(column, "") for column in columns))
    return ("\n".join(lines) + "\n").encode("utf-8")


def make_request(payload, **kwargs):
    params = {
        "payload": payload,
        "filename": "prices.csv",
        "data_type": "property_prices",
        "source": "land_registry",
        "date_range": DateRange(date(2024, 1, 1), date(2024, 12, 31)),
        "submitted_by": "admin-1",
        "region": None,
        "overwrite_existing": False
    }
    params.update(kwargs)
    return ImportRequest(**params)
