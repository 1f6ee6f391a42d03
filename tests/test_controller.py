from __future__ import annotations

from pathlib import Path

import pytest

from core.controller import KVSessionController
from core.errors import SessionNotConnectedError
from core.persistence.local_storage import DirectoryBackend, StorageOrigin


def test_connect_sets_session_and_namespace(controller: KVSessionController) -> None:
    assert controller.is_ready()
    assert controller.session.server_address == "10.31.17.1"
    assert controller.session.transport_port == "18515"
    assert controller.session.secondary_port == "1"
    assert controller.namespace == "kv_store_10.31.17.1"


def test_operations_require_connection(make_controller) -> None:
    ctl = make_controller()
    with pytest.raises(SessionNotConnectedError):
        ctl.set("k", "v")
    with pytest.raises(SessionNotConnectedError):
        ctl.run_command("get k")


def test_last_result_tracks_latest_operation(controller: KVSessionController) -> None:
    controller.set("k", "v")
    assert controller.last_result == 'Successfully set key "k" with value "v"'
    controller.get("")
    assert controller.last_result == "Error: Key cannot be empty"


def test_disconnect_clears_view_but_keeps_data(make_controller) -> None:
    ctl = make_controller()
    ctl.connect("A")
    ctl.set("k", "v")

    ctl.disconnect()

    assert not ctl.is_ready()
    assert ctl.session.server_address == ""
    assert ctl.get_history() == []
    assert ctl.records() == {}
    assert ctl.last_result == ""

    ctl.connect("A")
    assert ctl.get_history() == []
    assert ctl.get("k") == 'Value for key "k": "v"'


def test_addresses_are_isolated(make_controller) -> None:
    ctl = make_controller()
    ctl.connect("A")
    ctl.set("k", "v")

    ctl.connect("B")
    assert ctl.get("k") == 'Error: Key "k" not found'
    assert ctl.get_history()[0].key == "k"
    assert len(ctl.get_history()) == 1


def test_history_holds_ten_most_recent(controller: KVSessionController) -> None:
    for i in range(11):
        controller.set(f"k{i}", str(i))

    history = controller.get_history()
    assert len(history) == 10
    assert [e.key for e in history] == [f"k{i}" for i in range(10, 0, -1)]


def test_custom_prefix_and_history_limit(make_controller) -> None:
    ctl = make_controller(prefix="ns:", history_limit=2)
    ctl.connect("host")
    for key in ("a", "b", "c"):
        ctl.get(key)
    assert ctl.namespace == "ns:host"
    assert [e.key for e in ctl.get_history()] == ["c", "b"]


def test_other_tab_write_is_visible_without_local_mutation(make_controller) -> None:
    tab_a = make_controller()
    tab_b = make_controller()
    tab_a.connect("A")
    tab_b.connect("A")
    before = tab_a.store_version

    tab_b.set("shared", "from b")

    assert tab_a.store_version > before
    assert tab_a.records() == {"shared": "from b"}
    assert tab_a.get("shared") == 'Value for key "shared": "from b"'
    # the inbound update itself is not an operation
    assert len(tab_a.get_history()) == 1


def test_last_writer_wins_across_tabs(make_controller) -> None:
    tab_a = make_controller()
    tab_b = make_controller()
    tab_a.connect("A")
    tab_b.connect("A")

    tab_a.set("x", "1")
    tab_b.set("y", "2")

    assert tab_a.records() == {"x": "1", "y": "2"}
    assert tab_b.records() == {"x": "1", "y": "2"}


def test_tab_on_other_address_is_untouched(make_controller) -> None:
    tab_a = make_controller()
    tab_b = make_controller()
    tab_a.connect("A")
    tab_b.connect("B")

    tab_b.set("k", "v")
    assert tab_a.records() == {}


def test_run_command(controller: KVSessionController) -> None:
    assert controller.run_command('set greeting "hello world"') == (
        'Successfully set key "greeting" with value "hello world"'
    )
    assert controller.run_command("get greeting") == 'Value for key "greeting": "hello world"'


def test_run_command_syntax_error_is_not_recorded(controller: KVSessionController) -> None:
    result = controller.run_command("frobnicate k")
    assert result.startswith("Error: Unknown command 'frobnicate'")
    assert controller.last_result == result
    assert controller.get_history() == []


def test_close_detaches_sync(make_controller, origin) -> None:
    tab_a = make_controller()
    tab_a.connect("A")
    tab_a.close()

    writer = make_controller()
    writer.connect("A")
    writer.set("k", "v")

    assert tab_a.records() == {}


def test_tabs_on_threaded_origin_converge() -> None:
    from core.persistence.local_storage import MemoryBackend, StorageOrigin

    origin = StorageOrigin(MemoryBackend(), asynchronous=True)
    tab_a = KVSessionController(origin.open_context())
    tab_b = KVSessionController(origin.open_context())
    tab_a.connect("A")
    tab_b.connect("A")

    tab_a.set("x", "1")
    origin.channel.join()
    tab_b.set("y", "2")
    origin.channel.join()

    assert tab_a.records() == tab_b.records() == {"x": "1", "y": "2"}


def test_connect_survives_undecodable_storage_file(tmp_path: Path) -> None:
    backend = DirectoryBackend(tmp_path)
    backend.path_for("kv_store_A").write_bytes(b'{"k": "\xff\xfe"}')
    ctl = KVSessionController(StorageOrigin(backend).open_context())

    ctl.connect("A")

    assert ctl.records() == {}
    assert ctl.set("k", "v") == 'Successfully set key "k" with value "v"'


def test_very_long_address_persists_on_disk(tmp_path: Path) -> None:
    address = "h" * 300
    ctl = KVSessionController(StorageOrigin(DirectoryBackend(tmp_path)).open_context())
    ctl.connect(address)
    ctl.set("k", "v")

    later = KVSessionController(StorageOrigin(DirectoryBackend(tmp_path)).open_context())
    later.connect(address)

    assert later.get("k") == 'Value for key "k": "v"'
    assert later.known_namespaces() == [address]


def test_store_version_follows_local_changes(controller: KVSessionController) -> None:
    before = controller.store_version

    controller.set("k", "v")
    controller.get("k")

    assert controller.store_version == before + 1
    controller.disconnect()
    assert controller.store_version == before + 2


def test_known_namespaces_lists_addresses_under_prefix(make_controller, origin) -> None:
    origin.open_context().save("other_app", "{}")
    ctl = make_controller()
    ctl.connect("A")
    ctl.set("k", "v")
    make_controller().connect("B")

    # binding alone writes nothing
    assert ctl.known_namespaces() == ["A"]
