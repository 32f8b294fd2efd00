"""
Tests for the occ-create-admin command.
"""

import sys

import bcrypt
import pytest
from sqlalchemy import select

from occ_library import create_admin as cli
from occ_library.models import User
from occ_library.services.errors import ConflictError

ARGS = ["occ-create-admin", "--firstname", "Ana", "--lastname", "Cruz", "--email", "ana@occ.edu.ph"]


@pytest.fixture
def created(monkeypatch):
    """Replace account creation with a recorder."""
    calls = []

    async def fake_create_admin(firstname, lastname, email, password):
        calls.append((firstname, lastname, email, password))
        return 42

    monkeypatch.setattr(cli, "create_admin", fake_create_admin)
    return calls


@pytest.mark.unit
class TestMain:

    def test_creates_account(self, monkeypatch, capsys, created):
        monkeypatch.setattr(sys, "argv", ARGS + ["--password", "library123"])

        cli.main()

        assert created == [("Ana", "Cruz", "ana@occ.edu.ph", "library123")]
        assert "id=42" in capsys.readouterr().out

    def test_prompts_for_missing_password(self, monkeypatch, created):
        monkeypatch.setattr(sys, "argv", ARGS)
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt: "prompted-secret")

        cli.main()

        assert created[0][3] == "prompted-secret"

    def test_short_password_exits_with_error(self, monkeypatch, capsys, created):
        monkeypatch.setattr(sys, "argv", ARGS + ["--password", "12345"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        assert created == []
        assert "at least 6 characters" in capsys.readouterr().err

    def test_duplicate_email_exits_with_error(self, monkeypatch, capsys):
        async def duplicate(*args):
            raise ConflictError("User with this email already exists")

        monkeypatch.setattr(cli, "create_admin", duplicate)
        monkeypatch.setattr(sys, "argv", ARGS + ["--password", "library123"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        assert "already exists" in capsys.readouterr().err


@pytest.mark.api
class TestCreateAdmin:

    @pytest.fixture(autouse=True)
    def use_test_database(self, monkeypatch, session_factory):
        async def noop():
            return None

        monkeypatch.setattr(cli, "init_db", noop)
        monkeypatch.setattr(cli, "close_db", noop)
        monkeypatch.setattr(cli, "AsyncSessionLocal", session_factory)

    async def test_inserts_admin(self, db):
        user_id = await cli.create_admin("Ana", "Cruz", "ana@occ.edu.ph", "library123")

        user = await db.scalar(select(User).where(User.id == user_id))
        assert user.email == "ana@occ.edu.ph"
        assert user.is_admin is True
        assert bcrypt.checkpw(b"library123", user.password_hash.encode())

    async def test_duplicate_email_raises(self, user):
        with pytest.raises(ConflictError):
            await cli.create_admin("Maria", "Santos", user.email, "library123")
