"""
Shared test fixtures and utilities.
"""
from datetime import datetime, timedelta
from unittest.mock import Mock
import jwt
import pytest
from src.core import config
from src.repositories.db_repository import DBRepository
from src.repositories.import_history_repository import ImportHistoryRepository
from tests.support import write_everything

JWT_SECRET = "dev-secret-change-in-production"


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Point every test at fake AWS credentials and a fixed JWT secret."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("MARKET_DATA_TABLE_NAME", "MarketData-test")
    monkeypatch.setenv("IMPORT_HISTORY_TABLE_NAME", "ImportHistory-test")
    monkeypatch.setenv("JWT_SECRET", JWT_SECRET)
    config.settings = config.Settings()
    yield
    monkeypatch.undo()
    config.settings = config.Settings()


@pytest.fixture
def auth_headers():
    """Generate valid JWT token and return authorization headers."""
    expiration = datetime.utcnow() + timedelta(hours=1)
    payload = {
        "sub": "test_user",
        "exp": expiration,
        "iat": datetime.utcnow()
    }

    token = jwt.encode(payload, JWT_SECRET, algorithm="HS256")

    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def market_repo():
    """Market data repository double that stores every row it is given."""
    repo = Mock(spec=DBRepository)
    repo.write_batch.side_effect = write_everything
    return repo


@pytest.fixture
def history_repo():
    return Mock(spec=ImportHistoryRepository)
