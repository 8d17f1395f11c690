"""
Unit tests for client token stores.
"""

from blyss.client.credentials import FileTokenStore, InMemoryTokenStore


def test_in_memory_store():
    store = InMemoryTokenStore("abc")
    assert store.get_token() == "abc"

    store.set_token("def")
    assert store.get_token() == "def"

    store.clear()
    assert store.get_token() is None


def test_file_store_round_trip(tmp_path):
    path = tmp_path / "nested" / "token.json"
    store = FileTokenStore(path)

    assert store.get_token() is None

    store.set_token("abc")
    assert FileTokenStore(path).get_token() == "abc"
    assert path.stat().st_mode & 0o777 == 0o600

    store.clear()
    assert not path.exists()
    store.clear()


def test_file_store_unreadable_content_reads_as_empty(tmp_path):
    path = tmp_path / "token.json"
    path.write_text("{not json")

    assert FileTokenStore(path).get_token() is None
