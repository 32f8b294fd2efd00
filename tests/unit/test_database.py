"""
Unit tests for engine configuration.
"""

import pytest
from sqlalchemy.pool import StaticPool

from occ_library.database import engine_options

pytestmark = pytest.mark.unit


class TestEngineOptions:

    def test_postgres_gets_a_checked_pool(self):
        options = engine_options("postgresql+asyncpg://user:pw@localhost:5432/occ_library")

        assert options["pool_pre_ping"] is True
        assert options["pool_size"] == 5
        assert "poolclass" not in options

    @pytest.mark.parametrize("url", ["sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"])
    def test_in_memory_sqlite_shares_one_connection(self, url):
        options = engine_options(url)

        assert options["poolclass"] is StaticPool
        assert "pool_size" not in options

    def test_sqlite_file_uses_default_pool(self, tmp_path):
        options = engine_options(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")

        assert "poolclass" not in options
        assert "pool_size" not in options
