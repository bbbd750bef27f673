import os
import tempfile
from pathlib import Path

# Keep the rotating log file out of the working tree; must run before
# the first get_config() call.
os.environ.setdefault(
    "POCKETAUTH_LOG_FILE",
    str(Path(tempfile.mkdtemp(prefix="pocketauth-logs-")) / "pocketauth-test.log"),
)

import pytest

from pocketauth.auth import SessionManager
from pocketauth.config import AppConfig
from pocketauth.database import DatabaseManager
from pocketauth.logger import StructuredLogger
from pocketauth.models.user import UserRegistration
from pocketauth.services import create_services


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        USER_DB_PATH=tmp_path / "auth.db",
        SESSION_DB_PATH=tmp_path / "session_store.db",
        SESSION_SALT_PATH=tmp_path / "session_salt",
        PASSWORD_HASH_ITERATIONS=1_000,
        SESSION_KEY_ITERATIONS=1_000,
    )


@pytest.fixture
def logger():
    return StructuredLogger(name="pocketauth.tests")


@pytest.fixture
def user_db(config, logger):
    db = DatabaseManager(sqlite_path=config.USER_DB_PATH, logger=logger)
    yield db
    db.close()


@pytest.fixture
def session_db(config, logger):
    db = DatabaseManager(sqlite_path=config.SESSION_DB_PATH, logger=logger)
    yield db
    db.close()


@pytest.fixture
def session():
    return SessionManager()


@pytest.fixture
def services(user_db, session_db, config, session, logger):
    container = create_services(
        user_db=user_db,
        session_db=session_db,
        config=config,
        session=session,
        logger=logger,
    )
    container["auth_service"].init_database()
    return container


@pytest.fixture
def auth(services):
    return services["auth_service"]


@pytest.fixture
def repo(services):
    return services["user_repository"]


@pytest.fixture
def session_cache(services):
    return services["session_cache"]


@pytest.fixture
def store(services):
    return services["key_value_store"]


def make_registration(**overrides):
    data = {
        "username": "alice",
        "password": "p1",
        "first_name": "Alice",
        "last_name": "Liddell",
        "email": "a@x.com",
        "contact_number": "09171234567",
        "address": "1 Rabbit Hole Lane",
        "profile_picture": "file:///photos/alice.jpg",
    }
    data.update(overrides)
    return UserRegistration(**data)


@pytest.fixture
def alice():
    return make_registration()
