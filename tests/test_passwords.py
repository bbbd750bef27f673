from pocketauth.utils.passwords import dummy_verify, hash_password, verify_password


def test_hash_format_and_verify():
    encoded = hash_password("correct horse", iterations=1_000)

    algorithm, iterations, salt_hex, digest = encoded.split("$")
    assert algorithm == "pbkdf2_sha256"
    assert iterations == "1000"
    assert len(bytes.fromhex(salt_hex)) == 16
    assert len(digest) == 64
    assert verify_password("correct horse", encoded)
    assert not verify_password("Correct horse", encoded)


def test_same_password_gets_distinct_salts():
    assert hash_password("p1", iterations=1_000) != hash_password("p1", iterations=1_000)


def test_malformed_hashes_never_match():
    assert not verify_password("p1", "p1")
    assert not verify_password("p1", "")
    assert not verify_password("p1", "md5$1000$00$00")
    assert not verify_password("p1", "pbkdf2_sha256$many$00$00")


def test_dummy_verify_is_false():
    assert dummy_verify("anything", iterations=1_000) is False
