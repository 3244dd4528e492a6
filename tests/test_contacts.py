import pytest

from ciphergate.contacts import filename_to_identity, identity_to_filename
from ciphergate.errors import InvalidContact, InvalidNumber


@pytest.mark.parametrize("name,number", [
    ("Alice", "+15550001"),
    ("Bob Smith", "0044123456789"),
    ("Unknown", "+1"),
    ("Dr. O'Neil +1", "+15"),
    ("", "+4930123"),
])
def test_filename_round_trip(name, number):
    filename = identity_to_filename(name, number)
    assert filename_to_identity(filename) == (name, number)
    assert identity_to_filename(*filename_to_identity(filename)) == filename


@pytest.mark.parametrize("number", ["15550001", "+", "00", "+1555 0001", "+1555a", "0+1555", "+15550001\n", ""])
def test_identity_rejects_non_canonical_numbers(number):
    with pytest.raises(InvalidNumber):
        identity_to_filename("Alice", number)


@pytest.mark.parametrize("filename", [
    "Alice.textsecure",
    "Alice 15550001.textsecure",
    "Alice +15550001.txt",
    "Alice +15550001",
    "Alice +1555x0001.textsecure",
])
def test_filename_rejects_bad_names(filename):
    with pytest.raises(InvalidContact):
        filename_to_identity(filename)


def test_identity_rejects_slash_in_name():
    with pytest.raises(InvalidContact):
        identity_to_filename("../Alice", "+15550001")


def test_resolve_by_path(contacts, config, make_contact):
    path = make_contact("Alice", "+15550001")

    contact = contacts.resolve_by_path(path)

    assert contact.display_name == "Alice"
    assert contact.number == "+15550001"
    assert contact.history_path == path.resolve()
    assert contact.attachment_dir == config.attachments_path / "Alice +15550001"
    assert identity_to_filename(contact.display_name, contact.number) == path.name


def test_resolve_by_path_outside_contacts_root(contacts, config):
    path = config.mount_point / "Alice +15550001.textsecure"
    with pytest.raises(InvalidContact):
        contacts.resolve_by_path(path)


def test_resolve_by_path_traversal_into_key_storage(contacts, config):
    config.storage_path.mkdir(parents=True)
    path = config.contacts_path / ".." / ".." / config.key_path / "textsecure" / "private" / "Eve +1666.textsecure"
    with pytest.raises(InvalidContact):
        contacts.resolve_by_path(path)


def test_resolve_by_path_with_invalid_number(contacts, config):
    path = config.contacts_path / "Alice 5550001.textsecure"
    with pytest.raises(InvalidContact):
        contacts.resolve_by_path(path)


def test_resolve_by_path_does_not_create_files(contacts, config):
    path = config.contacts_path / "Alice +15550001.textsecure"
    contacts.resolve_by_path(path)
    assert not path.exists()


def test_resolve_by_number_existing_contact(contacts, make_contact):
    path = make_contact("Alice", "+15550001")

    contact = contacts.resolve_by_number("+15550001")

    assert contact.display_name == "Alice"
    assert contact.history_path == path.resolve()


def test_resolve_by_number_unknown_is_not_persisted(contacts, config):
    contact = contacts.resolve_by_number("+15559999")

    assert contact.display_name == "Unknown"
    assert contact.number == "+15559999"
    assert contact.history_path == config.contacts_path / "Unknown +15559999.textsecure"
    assert contact.attachment_dir == config.attachments_path / "Unknown +15559999"
    assert not contact.history_path.exists()
    # contacts root is created as a side effect
    assert config.contacts_path.is_dir()


def test_resolve_by_number_matches_exact_number_only(contacts, make_contact):
    make_contact("Bob", "+115550001")

    contact = contacts.resolve_by_number("+15550001")

    assert contact.display_name == "Unknown"


@pytest.mark.parametrize("number", ["15550001", "+1555-0001", "alice", ""])
def test_resolve_by_number_rejects_invalid(contacts, number):
    with pytest.raises(InvalidNumber):
        contacts.resolve_by_number(number)


def test_resolve_by_number_multiple_matches_uses_first(contacts, make_contact):
    make_contact("Zed", "+15550001")
    make_contact("Alice", "+15550001")

    assert contacts.resolve_by_number("+15550001").display_name == "Alice"
