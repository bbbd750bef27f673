import pytest

from conftest import make_registration
from pocketauth.database import DatabaseManager
from pocketauth.exceptions import DuplicateCredential, StorageUnavailable
from pocketauth.models.user import ProfileUpdate
from pocketauth.repositories.user_repository import UserRepository
from pocketauth.schema import USER_COLUMNS, initialize_schema, reset_schema


def test_schema_has_expected_columns(user_db, services):
    columns = [row[1] for row in user_db.sqlite.execute("PRAGMA table_info(users)")]
    assert tuple(columns) == USER_COLUMNS


def test_initialize_schema_twice_keeps_rows(user_db, repo, logger):
    repo.create(make_registration(), "hash")

    initialize_schema(user_db.sqlite, logger)
    initialize_schema(user_db.sqlite, logger)

    assert repo.count() == 1
    version = user_db.sqlite.execute("SELECT version FROM schema_version").fetchone()[0]
    assert version == 1


def test_reset_schema_empties_table(user_db, repo, logger):
    repo.create(make_registration(), "hash")

    reset_schema(user_db.sqlite, logger)

    assert repo.count() == 0


def test_create_and_fetch(repo):
    user_id = repo.create(make_registration(), "hash")

    assert repo.get_by_id(user_id).username == "alice"
    assert repo.get_by_username("alice").id == user_id
    user, password_hash = repo.get_credentials("alice")
    assert user.id == user_id
    assert password_hash == "hash"
    assert repo.get_credentials("nobody") is None


def test_public_reads_exclude_password(repo):
    repo.create(make_registration(), "secret-hash")

    user = repo.get_by_username("alice")

    assert "secret-hash" not in user.model_dump_json()
    assert all("secret-hash" not in u.model_dump_json() for u in repo.get_all())


def test_unique_username_constraint(repo):
    repo.create(make_registration(), "hash")

    with pytest.raises(DuplicateCredential) as excinfo:
        repo.create(make_registration(email="z@x.com"), "hash")

    assert excinfo.value.field == "username"
    assert repo.count() == 1


def test_update_and_delete(repo):
    user_id = repo.create(make_registration(), "hash")

    assert repo.update_profile(user_id, ProfileUpdate(first_name="A", email="n@x.com")) is True
    user = repo.get_by_id(user_id)
    assert user.first_name == "A"
    assert user.last_name is None
    assert user.email == "n@x.com"

    assert repo.delete(user_id) is True
    assert repo.delete(user_id) is False
    assert repo.update_profile(user_id, ProfileUpdate()) is False


def test_missing_table_is_storage_unavailable(logger):
    db = DatabaseManager(sqlite_path=":memory:", logger=logger)
    try:
        with pytest.raises(StorageUnavailable):
            UserRepository(db=db, logger=logger).get_all()
    finally:
        db.close()


def test_unopenable_path_is_storage_unavailable(tmp_path, logger):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")

    with pytest.raises(StorageUnavailable):
        DatabaseManager(sqlite_path=blocker / "auth.db", logger=logger)


def test_failed_insert_leaves_store_usable(user_db, repo):
    first_id = repo.create(make_registration(), "hash")

    with pytest.raises(DuplicateCredential):
        repo.create(make_registration(username="bob"), "hash")

    assert not user_db.sqlite.in_transaction
    second_id = repo.create(make_registration(username="bob", email="b@x.com"), "hash")
    assert second_id > first_id
    assert repo.count() == 2


def test_close_is_idempotent(user_db):
    user_db.close()
    user_db.close()

    with pytest.raises(StorageUnavailable):
        user_db.sqlite
