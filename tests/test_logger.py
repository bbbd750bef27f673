import io
import json
import logging

from pocketauth.logger import REDACTED, JSONFormatter, StructuredLogger


def _record(**extra):
    record = logging.LogRecord(
        name="auth", level=logging.INFO, pathname=__file__, lineno=1,
        msg="User logged in: %s", args=("alice",), exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_event_is_a_top_level_field():
    entry = json.loads(JSONFormatter().format(_record(event="LOGIN", user_id=7)))

    assert entry["message"] == "User logged in: alice"
    assert entry["level"] == "INFO"
    assert entry["event"] == "LOGIN"
    assert entry["extra"] == {"user_id": 7}


def test_record_without_extras_has_no_extra_block():
    entry = json.loads(JSONFormatter().format(_record()))

    assert "event" not in entry
    assert "extra" not in entry


def test_sensitive_fields_are_masked(tmp_path):
    stream = io.StringIO()
    log = StructuredLogger(
        name="pocketauth.tests.redaction",
        stream=stream,
        log_file=str(tmp_path / "redaction.log"),
    )

    log.info("Attempt", extra={"event": "LOGIN_FAILED", "password": "p1", "username": "alice"})

    for line in (stream.getvalue(), (tmp_path / "redaction.log").read_text("utf-8")):
        entry = json.loads(line.strip())
        assert entry["event"] == "LOGIN_FAILED"
        assert entry["extra"] == {"password": REDACTED, "username": "alice"}
        assert "p1" not in line


def test_auth_events_reach_the_log(services, logger, alice):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.logger.addHandler(handler)
    try:
        auth = services["auth_service"]
        auth.register_user(alice)
        auth.login_user("alice", "wrong")
        auth.login_user("alice", "p1")
    finally:
        logger.logger.removeHandler(handler)

    events = [json.loads(line).get("event") for line in stream.getvalue().splitlines()]
    assert events.count("REGISTER") == 1
    assert events.count("LOGIN_FAILED") == 1
    assert events.count("LOGIN") == 1
    assert "p1" not in stream.getvalue()
