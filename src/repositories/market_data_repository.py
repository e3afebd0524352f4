"""
DynamoDB Repository for market data storage.
Writes validated market records keyed by their natural key.
"""
from datetime import datetime, timezone
from typing import List, Optional
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from src.core import config
from src.core.exceptions import DynamoDBException
from src.models.market_data import MarketData
from src.repositories.db_repository import BatchResult, DBRepository

CONDITIONAL_CHECK_FAILED = 'ConditionalCheckFailedException'

# Errors that concern the table or credentials, not the row being written
TABLE_LEVEL_ERRORS = {
    'ResourceNotFoundException',
    'AccessDeniedException',
    'UnrecognizedClientException'
}


class MarketDataRepository(DBRepository):
    """Repository for market data DynamoDB operations."""

    def __init__(self):
        self.dynamodb = boto3.resource('dynamodb', region_name=config.settings.aws_region)
        self.table = self.dynamodb.Table(config.settings.market_data_table_name)

    def write_batch(self, entities: List[MarketData], overwrite: bool) -> BatchResult:
        """
        Save a batch of market records.

        With overwrite, records are upserted on their natural key through the
        DynamoDB batch writer; if that fails, each record is retried on its own
        so one bad item is isolated. Without overwrite, a record whose natural
        key already exists is rejected as a conflict.

        Args:
            entities: Validated MarketData drafts
            overwrite: Replace existing records with the same natural key

        Returns:
            BatchResult with per-record failures

        Raises:
            DynamoDBException: If DynamoDB or the table is unusable for every row
        """
        if not entities:
            return BatchResult()

        imported_at = datetime.now(timezone.utc).isoformat()

        if overwrite:
            try:
                with self.table.batch_writer(overwrite_by_pkeys=['PK', 'SK']) as batch:
                    for entity in entities:
                        batch.put_item(Item=self._to_item(entity, imported_at))
                return BatchResult(success_count=len(entities))
            except ClientError:
                # Upserts are idempotent, so replaying item by item is safe
                return self._put_each(entities, imported_at, condition=None)
            except BotoCoreError as e:
                raise DynamoDBException(f"Failed to batch save market data: {str(e)}") from e

        return self._put_each(entities, imported_at, condition='attribute_not_exists(PK)')

    def _put_each(self, entities: List[MarketData], imported_at: str, condition: Optional[str]) -> BatchResult:
        result = BatchResult()
        for entity in entities:
            kwargs = {'Item': self._to_item(entity, imported_at)}
            if condition:
                kwargs['ConditionExpression'] = condition
            try:
                self.table.put_item(**kwargs)
                result.success_count += 1
            except ClientError as e:
                if e.response.get('Error', {}).get('Code') in TABLE_LEVEL_ERRORS:
                    raise DynamoDBException(f"Failed to save market data: {str(e)}") from e
                result.failures.append((entity, self._failure_reason(entity, e)))
            except BotoCoreError as e:
                raise DynamoDBException(f"Failed to save market data: {str(e)}") from e
        return result

    def _failure_reason(self, entity: MarketData, error: ClientError) -> str:
        code = error.response.get('Error', {}).get('Code')
        if code == CONDITIONAL_CHECK_FAILED:
            location, property_type, record_date = entity.natural_key
            return (
                f"Record already exists for location={location}, "
                f"property_type={property_type or '-'}, record_date={record_date}"
            )
        return f"Failed to save market data: {str(error)}"

    def _create_pk(self, entity: MarketData) -> str:
        """Create partition key from location and property type."""
        location, property_type, _ = entity.natural_key
        return f"MARKET#{location}#{property_type or 'ALL'}"

    def _create_sk(self, entity: MarketData) -> str:
        """Create sort key from the record date."""
        return f"DATE#{entity.record_date.isoformat()}"

    def _to_item(self, entity: MarketData, imported_at: str) -> dict:
        item = {
            'PK': self._create_pk(entity),
            'SK': self._create_sk(entity),
            'location': entity.location,
            'data_type': entity.data_type,
            'source': entity.source,
            'average_price': entity.average_price,
            'record_date': entity.record_date.isoformat(),
            'imported_at': imported_at
        }
        optional = {
            'property_type': entity.property_type,
            'median_price': entity.median_price,
            'sales_volume': entity.sales_volume,
            'import_job_id': entity.import_job_id,
            'notes': entity.notes
        }
        item.update({key: value for key, value in optional.items() if value is not None})
        return item
