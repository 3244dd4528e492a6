from ciphergate.registration import RegistrationState, atomic_write


def test_fresh_storage_needs_registration(config):
    state = RegistrationState.load(config.storage_path)

    assert state.registered_number is None
    assert state.provisioned is False
    assert state.needs_registration()


def test_save_number_persists_verbatim(config):
    state = RegistrationState.load(config.storage_path)

    state.save_number("0044123456789")

    assert config.number_path.read_text() == "0044123456789"
    assert RegistrationState.load(config.storage_path).registered_number == "0044123456789"
    # saving a number alone does not complete registration
    assert state.needs_registration()


def test_mark_provisioned_writes_last_resort_key_marker(config):
    state = RegistrationState.load(config.storage_path)
    state.save_number("+15551234")

    state.mark_provisioned()

    assert (config.storage_path / "prekeys" / "016777215").exists()
    reloaded = RegistrationState.load(config.storage_path)
    assert reloaded.provisioned
    assert not reloaded.needs_registration()


def test_atomic_write_replaces_without_leftovers(tmp_path):
    path = tmp_path / "private" / "number"

    atomic_write(path, b"+1555")
    atomic_write(path, b"+1666")

    assert path.read_bytes() == b"+1666"
    assert [p.name for p in path.parent.iterdir()] == ["number"]
    assert path.stat().st_mode & 0o777 == 0o600
