import json

from pocketauth.database import DatabaseManager
from pocketauth.models.user import User
from pocketauth.services.key_value_store import (
    KEY_IS_LOGGED_IN,
    KEY_LOGGED_IN_USER,
    KeyValueStore,
)
from pocketauth.services.session_cache import SessionCacheService


def _user():
    return User(
        id=7,
        username="alice",
        first_name="Alice",
        last_name="Liddell",
        email="a@x.com",
        contact_number="0917",
        address="1 Rabbit Hole Lane",
        profile_picture=None,
    )


def test_key_value_store_roundtrip(store):
    assert store.get("missing") is None
    assert store.set("theme", "dark") is True
    assert store.get("theme") == "dark"
    assert store.set("theme", "light") is True
    assert store.get("theme") == "light"
    assert store.remove("theme") is True
    assert store.get("theme") is None
    assert store.remove("theme") is True


def test_key_value_store_survives_reopen(session_db, config, logger):
    first = KeyValueStore(db=session_db, logger=logger)
    first.set(KEY_IS_LOGGED_IN, "true")
    session_db.close()

    reopened = DatabaseManager(sqlite_path=config.SESSION_DB_PATH, logger=logger)
    try:
        assert KeyValueStore(db=reopened, logger=logger).get(KEY_IS_LOGGED_IN) == "true"
    finally:
        reopened.close()


def test_cache_and_load(session_cache, store):
    user = _user()

    assert session_cache.cache_session(user) is True

    assert session_cache.is_logged_in()
    cached = session_cache.load_cached_session()
    assert cached.user == user
    assert cached.cached_at


def test_snapshot_is_encrypted(session_cache, store):
    session_cache.cache_session(_user())

    raw = store.get(KEY_LOGGED_IN_USER)
    assert "alice" not in raw
    assert set(json.loads(raw)) == {"payload", "nonce", "tag"}


def test_tampered_snapshot_is_ignored(session_cache, store):
    session_cache.cache_session(_user())
    sealed = json.loads(store.get(KEY_LOGGED_IN_USER))
    sealed["tag"] = "00" * 16
    store.set(KEY_LOGGED_IN_USER, json.dumps(sealed))

    assert session_cache.load_cached_session() is None


def test_malformed_snapshot_is_ignored(session_cache, store):
    store.set(KEY_LOGGED_IN_USER, "{not json")
    assert session_cache.load_cached_session() is None

    store.set(KEY_LOGGED_IN_USER, "42")
    assert session_cache.load_cached_session() is None


def test_snapshot_unreadable_with_other_salt(session_cache, store, logger, tmp_path):
    session_cache.cache_session(_user())

    other = SessionCacheService(
        store=store,
        logger=logger,
        salt_path=tmp_path / "other_salt",
        key_iterations=1_000,
    )

    assert other.load_cached_session() is None


def test_expired_snapshot(store, logger, config):
    cache = SessionCacheService(
        store=store,
        logger=logger,
        salt_path=config.SESSION_SALT_PATH,
        max_age_days=-1,
        key_iterations=1_000,
    )
    cache.cache_session(_user())

    assert cache.load_cached_session() is None


def test_salt_file_is_created_once(session_cache, config):
    session_cache.cache_session(_user())
    salt = config.SESSION_SALT_PATH.read_bytes()

    assert len(salt) == 32
    session_cache.cache_session(_user())
    assert config.SESSION_SALT_PATH.read_bytes() == salt


def test_clear_session(session_cache, store):
    session_cache.cache_session(_user())

    session_cache.clear_session()

    assert not session_cache.is_logged_in()
    assert store.get(KEY_LOGGED_IN_USER) is None
    session_cache.clear_session()
