from openrag.utils.hashing import (
    generate_chunk_id,
    generate_content_hash,
    generate_source_id,
    sub_chunk_id,
)


def test_chunk_id_is_deterministic_and_short():
    first = generate_chunk_id("https://github.com/acme/widgets", "src/app.js", "abc123")
    second = generate_chunk_id("https://github.com/acme/widgets", "src/app.js", "abc123")

    assert first == second
    assert len(first) == 16
    int(first, 16)


def test_chunk_id_depends_on_every_input():
    base = generate_chunk_id("https://github.com/acme/widgets", "src/app.js")

    assert base != generate_chunk_id("https://github.com/acme/widgets", "src/app.js", "abc123")
    assert base != generate_chunk_id("https://github.com/acme/widgets", "src/other.js")
    assert base != generate_chunk_id("https://github.com/acme/gadgets", "src/app.js")


def test_sub_chunk_id_suffixes():
    assert sub_chunk_id("deadbeef", 3) == "deadbeef_3"
    assert sub_chunk_id("deadbeef", 10, 42) == "deadbeef_10_42"
    assert sub_chunk_id("deadbeef") == "deadbeef"


def test_content_hash_is_full_md5():
    assert generate_content_hash("hello") == "5d41402abc4b2a76b9719d911017c592"
    assert generate_content_hash("hello") != generate_content_hash("hello ")


def test_source_id_is_stable():
    assert generate_source_id("https://docs.acme.dev") == generate_source_id("https://docs.acme.dev")
    assert len(generate_source_id("https://docs.acme.dev")) == 12
