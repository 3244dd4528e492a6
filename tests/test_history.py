import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from ciphergate.errors import StorageFailure
from ciphergate.history import HistoryStore, read_tail
from ciphergate.models import Direction, HistoryEntry

LINE_PATTERN = re.compile(r"^[A-Z][a-z]{2} \d{2} \d{2}:\d{2} [<>] .*$")


@pytest.fixture
def alice(contacts, make_contact):
    return contacts.resolve_by_path(make_contact("Alice", "+15550001"))


def test_entry_format():
    entry = HistoryEntry(timestamp=datetime(2015, 1, 2, 15, 4, 59), direction=Direction.OUTBOUND, body="hello")
    assert entry.format() == "Jan 02 15:04 > hello\n"


def test_entry_format_flattens_line_breaks():
    entry = HistoryEntry.inbound("one\ntwo\r\nthree", datetime(2015, 1, 2, 15, 4))
    assert entry.format() == "Jan 02 15:04 < one two three\n"


def test_append_creates_file_with_private_mode(history, contacts):
    contact = contacts.resolve_by_number("+15559999")

    history.append(contact, HistoryEntry.inbound("hi"))

    assert contact.history_path.exists()
    assert contact.history_path.stat().st_mode & 0o777 == 0o600


def test_append_is_append_only(history, alice):
    history.append(alice, HistoryEntry.outbound("first", datetime(2015, 1, 2, 15, 4)))
    history.append(alice, HistoryEntry.inbound("second", datetime(2015, 1, 2, 15, 5)))

    assert alice.history_path.read_text() == "Jan 02 15:04 > first\nJan 02 15:05 < second\n"


def test_append_missing_directory(history, contacts, config):
    contact = contacts.resolve_by_number("+15559999")
    config.contacts_path.rmdir()

    with pytest.raises(StorageFailure):
        history.append(contact, HistoryEntry.inbound("hi"))


def test_read_tail_small_file_returns_everything(history, alice):
    history.append(alice, HistoryEntry.outbound("hello"))
    assert history.read_tail(alice) == alice.history_path.read_text()


def test_read_tail_missing_file(history, contacts):
    contact = contacts.resolve_by_number("+15559999")
    with pytest.raises(StorageFailure):
        history.read_tail(contact)


def test_read_tail_exactly_max_bytes(tmp_path):
    path = tmp_path / "log"
    data = b"aaaa\nbbbb\n"
    path.write_bytes(data)

    assert read_tail(path, max_bytes=len(data)) == data.decode()


def test_read_tail_one_byte_over_drops_partial_line(tmp_path):
    path = tmp_path / "log"
    path.write_bytes(b"aaaa\nbbbb\ncccc\n")

    # offset 1 lands inside the first line; result starts after its line feed
    assert read_tail(path, max_bytes=14) == "bbbb\ncccc\n"


def test_read_tail_offset_on_line_feed(tmp_path):
    path = tmp_path / "log"
    path.write_bytes(b"aaaa\nbbbb\ncccc\n")

    # offset 4 is the first line feed itself
    assert read_tail(path, max_bytes=11) == "bbbb\ncccc\n"


def test_read_tail_without_line_feed_keeps_tail(tmp_path):
    path = tmp_path / "log"
    path.write_bytes(b"x" * 100)

    assert read_tail(path, max_bytes=10) == "x" * 10


def test_read_tail_is_idempotent(history, alice):
    for i in range(2000):
        history.append(alice, HistoryEntry.outbound(f"message {i}"))

    assert history.read_tail(alice) == history.read_tail(alice)


def test_read_tail_large_log_starts_on_line_boundary(history, alice):
    # Scenario C: 50 KiB log, 10 KiB bound
    while alice.history_path.stat().st_size < 50 * 1024:
        history.append(alice, HistoryEntry.inbound("the quick brown fox jumps over the lazy dog"))

    text = history.read_tail(alice, max_bytes=10 * 1024)
    full = alice.history_path.read_text()

    assert len(text.encode()) <= 10 * 1024
    assert full.endswith(text)
    assert full[len(full) - len(text) - 1] == "\n"
    for line in text.splitlines():
        assert LINE_PATTERN.match(line)


def test_concurrent_appends_stay_intact(history, alice):
    count = 400

    def write(i):
        history.append(alice, HistoryEntry.inbound(f"message {i:04d} " + "x" * 200))

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(write, range(count)))

    lines = alice.history_path.read_text().splitlines()
    assert len(lines) == count
    assert all(LINE_PATTERN.match(line) and line.endswith("x" * 200) for line in lines)
    assert sorted(int(line.split()[5]) for line in lines) == list(range(count))


def test_store_uses_configured_bound(alice):
    # each line is 19 bytes, so only the second one fits whole
    store = HistoryStore(max_bytes=25)
    store.append(alice, HistoryEntry.outbound("one"))
    store.append(alice, HistoryEntry.outbound("two"))

    tail = store.read_tail(alice)
    assert tail.endswith("> two\n")
    assert "one" not in tail
    assert len(tail) == 19
