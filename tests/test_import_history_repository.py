"""
Unit tests for ImportHistoryRepository.
Uses moto to mock AWS DynamoDB service.
"""
from datetime import datetime, timedelta, timezone
import boto3
import pytest
from moto import mock_aws
from src.core.exceptions import DynamoDBException
from src.models.import_history import ImportHistoryRecord
from src.models.import_job import ImportStatus
from src.repositories.import_history_repository import ImportHistoryRepository

STARTED = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def _history(number, status=ImportStatus.COMPLETED, errors=None):
    return ImportHistoryRecord(
        history_id=f"hist-{number}",
        job_id=f"import_{number}",
        data_type="property_prices",
        source="land_registry",
        file_name="prices.csv",
        status=status,
        imported_by="admin-1",
        started_at=STARTED,
        imported_at=STARTED + timedelta(minutes=number),
        total_records=10,
        records_imported=9,
        records_failed=1,
        errors=errors or ["Row 4: Invalid averagePrice field"],
        error_count=len(errors or [None])
    )


@pytest.fixture
def history_table():
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        table = dynamodb.create_table(
            TableName="ImportHistory-test",
            KeySchema=[{"AttributeName": "history_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "history_id", "AttributeType": "S"},
                {"AttributeName": "history_category", "AttributeType": "S"},
                {"AttributeName": "imported_at", "AttributeType": "S"}
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "ImportedAtIndex",
                    "KeySchema": [
                        {"AttributeName": "history_category", "KeyType": "HASH"},
                        {"AttributeName": "imported_at", "KeyType": "RANGE"}
                    ],
                    "Projection": {"ProjectionType": "ALL"}
                }
            ],
            BillingMode="PAY_PER_REQUEST"
        )
        yield table


class TestImportHistoryRepository:
    """Test suite for ImportHistoryRepository."""

    def test_save_and_read_back(self, history_table):
        repo = ImportHistoryRepository()

        repo.save(_history(1, status=ImportStatus.CANCELLED))

        item = history_table.get_item(Key={"history_id": "hist-1"})["Item"]
        assert item["status"] == "cancelled"
        assert item["history_category"] == "ALL"
        assert item["errors"] == ["Row 4: Invalid averagePrice field"]

        records, total = repo.find_page(1, 10)
        assert total == 1
        record = records[0]
        assert record.job_id == "import_1"
        assert record.status == ImportStatus.CANCELLED
        assert record.started_at == STARTED
        assert record.records_imported == 9
        assert record.errors == ("Row 4: Invalid averagePrice field",)

    def test_save_is_append_only(self, history_table):
        repo = ImportHistoryRepository()
        repo.save(_history(1))

        with pytest.raises(DynamoDBException):
            repo.save(_history(1))

    def test_find_page_newest_first(self, history_table):
        repo = ImportHistoryRepository()
        for number in (2, 5, 1, 4, 3):
            repo.save(_history(number))

        first, total = repo.find_page(1, 2)
        second, _ = repo.find_page(2, 2)
        third, _ = repo.find_page(3, 2)

        assert total == 5
        assert [r.job_id for r in first] == ["import_5", "import_4"]
        assert [r.job_id for r in second] == ["import_3", "import_2"]
        assert [r.job_id for r in third] == ["import_1"]

    def test_find_page_past_end_is_empty(self, history_table):
        repo = ImportHistoryRepository()
        repo.save(_history(1))

        records, total = repo.find_page(3, 20)

        assert records == []
        assert total == 1

    def test_find_page_empty_table(self, history_table):
        records, total = ImportHistoryRepository().find_page(1, 20)

        assert records == []
        assert total == 0

    def test_missing_table_raises(self):
        with mock_aws():
            repo = ImportHistoryRepository()

            with pytest.raises(DynamoDBException):
                repo.save(_history(1))
            with pytest.raises(DynamoDBException):
                repo.find_page(1, 20)
