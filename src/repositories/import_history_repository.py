"""
Import History Repository for DynamoDB operations.
Append-only audit store for finished import jobs.
"""
from datetime import date, datetime
from typing import List, Tuple
import boto3
from botocore.exceptions import ClientError
from src.core import config
from src.core.exceptions import DynamoDBException
from src.models.import_history import ImportHistoryRecord
from src.models.import_job import ImportStatus

HISTORY_INDEX = 'ImportedAtIndex'
HISTORY_CATEGORY = 'ALL'


class ImportHistoryRepository:
    """Repository for import history DynamoDB operations."""

    def __init__(self):
        self.dynamodb = boto3.resource('dynamodb', region_name=config.settings.aws_region)
        self.table = self.dynamodb.Table(config.settings.import_history_table_name)

    def save(self, record: ImportHistoryRecord) -> None:
        """
        Append a history record.

        Args:
            record: ImportHistoryRecord built from a terminal job

        Raises:
            DynamoDBException: If the write fails
        """
        try:
            item = {
                'history_id': record.history_id,
                'history_category': HISTORY_CATEGORY,
                'job_id': record.job_id,
                'data_type': record.data_type,
                'source': record.source,
                'file_name': record.file_name,
                'status': record.status.value,
                'imported_by': record.imported_by,
                'started_at': record.started_at.isoformat(),
                'imported_at': record.imported_at.isoformat(),
                'total_records': record.total_records,
                'records_imported': record.records_imported,
                'records_failed': record.records_failed,
                'errors': list(record.errors),
                'error_count': record.error_count
            }
            if record.range_start is not None:
                item['range_start'] = record.range_start.isoformat()
            if record.range_end is not None:
                item['range_end'] = record.range_end.isoformat()

            self.table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(history_id)'
            )

        except ClientError as e:
            raise DynamoDBException(f"Failed to save import history: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error saving import history: {str(e)}") from e

    def find_page(self, page: int, limit: int) -> Tuple[List[ImportHistoryRecord], int]:
        """
        Return one page of history, newest completion first.

        Args:
            page: 1-based page number
            limit: Page size

        Returns:
            Tuple of (records on the page, total record count)

        Raises:
            DynamoDBException: If the query fails
        """
        try:
            query_kwargs = {
                'IndexName': HISTORY_INDEX,
                'KeyConditionExpression': 'history_category = :cat',
                'ExpressionAttributeValues': {':cat': HISTORY_CATEGORY},
                'ScanIndexForward': False
            }

            items = []
            while True:
                response = self.table.query(**query_kwargs)
                items.extend(response.get('Items', []))
                if 'LastEvaluatedKey' not in response:
                    break
                query_kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

            start = (page - 1) * limit
            records = [self._item_to_record(item) for item in items[start:start + limit]]
            return records, len(items)

        except ClientError as e:
            raise DynamoDBException(f"Failed to query import history: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error querying import history: {str(e)}") from e

    def _item_to_record(self, item: dict) -> ImportHistoryRecord:
        """Convert DynamoDB item to ImportHistoryRecord domain model."""
        return ImportHistoryRecord(
            history_id=item['history_id'],
            job_id=item['job_id'],
            data_type=item['data_type'],
            source=item['source'],
            file_name=item['file_name'],
            status=ImportStatus(item['status']),
            imported_by=item['imported_by'],
            started_at=datetime.fromisoformat(item['started_at']),
            imported_at=datetime.fromisoformat(item['imported_at']),
            total_records=int(item.get('total_records', 0)),
            records_imported=int(item.get('records_imported', 0)),
            records_failed=int(item.get('records_failed', 0)),
            errors=list(item.get('errors', [])),
            error_count=int(item.get('error_count', 0)),
            range_start=date.fromisoformat(item['range_start']) if 'range_start' in item else None,
            range_end=date.fromisoformat(item['range_end']) if 'range_end' in item else None
        )
