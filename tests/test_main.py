from conftest import make_registration
from main import bootstrap
from pocketauth import models


def test_bootstrap_restores_previous_session(config):
    first = bootstrap(config)
    try:
        auth = first.services["auth_service"]
        auth.register_user(make_registration())
        auth.login_user("alice", "p1")
        assert first.session.is_authenticated
    finally:
        first.close()

    relaunched = bootstrap(config)
    try:
        assert relaunched.session.get_current_user().username == "alice"
        relaunched.services["auth_service"].logout_user()
    finally:
        relaunched.close()

    third = bootstrap(config)
    try:
        assert not third.session.is_authenticated
        # data persisted across launches
        assert third.services["auth_service"].login_user("alice", "p1") is not None
    finally:
        third.close()


def test_models_package_exports_caller_facing_models():
    assert sorted(models.__all__) == [
        "CachedSession", "ProfileUpdate", "User", "UserRegistration", "ValidationResult",
    ]
