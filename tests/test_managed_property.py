"""Tests for ManagedProperty, the per-key view of a manager."""
from managedprops import PropertyEventType

from conftest import Color, ServerKey


class TestAccess:
    """Delegation to the manager."""

    def test_one_instance_per_key(self, manager):
        first = manager.get_managed_property(ServerKey.SERVER_PORT)

        assert manager.get_managed_property(ServerKey.SERVER_PORT) is first
        assert manager.get_managed_property(ServerKey.SERVER_HOST) is not first

    def test_accessors(self, manager):
        port = manager.get_managed_property(ServerKey.SERVER_PORT)
        url = manager.get_managed_property(ServerKey.SERVER_URL)
        color = manager.get_managed_property(ServerKey.COLOR)

        assert port.key is ServerKey.SERVER_PORT
        assert port.name == "server.port"
        assert port.manager is manager
        assert port.get_int() == 8080
        assert port.is_default()
        assert url.get() == "http://example.org:8080"
        assert url.get_raw() == "http://${server.host}:${server.port}"
        assert url.reference_at(7).name == "server.host"
        assert url.is_referencing(ServerKey.SERVER_PORT)
        assert color.get_enum(Color) is Color.RED

    def test_mutation(self, manager):
        port = manager.get_managed_property(ServerKey.SERVER_PORT)

        assert port.set(9090) is True
        assert port.is_modified()
        assert port.can_undo()
        assert port.undo() == "8080"
        assert port.can_redo()
        assert port.redo() == "9090"
        assert port.reset() is True
        assert port.get() == "8080"

    def test_save(self, empty_manager):
        timeout = empty_manager.get_managed_property(ServerKey.TIMEOUT)

        timeout.save(12)

        assert not timeout.is_modified()
        assert "timeout=12" in empty_manager.path.read_text(encoding='utf-8').splitlines()


class TestEvents:
    """Per-key event filtering."""

    def test_own_key_and_global_events(self, manager):
        port = manager.get_managed_property(ServerKey.SERVER_PORT)
        events = []
        port.add_listener(events.append)

        manager.set(ServerKey.SERVER_PORT, 9090)
        manager.set(ServerKey.TIMEOUT, 5)
        manager.save()

        assert [(event.event_type, event.property_key) for event in events] == [
            (PropertyEventType.LOADED, None),
            (PropertyEventType.CHANGED, ServerKey.SERVER_PORT),
            (PropertyEventType.SAVED, None),
        ]

    def test_referenced_key_events(self, manager):
        manager.load()
        url = manager.get_managed_property(ServerKey.SERVER_URL)
        events = []
        url.add_listener(events.append)

        manager.set(ServerKey.SERVER_HOST, "other.org")
        manager.set(ServerKey.DEBUG, True)

        assert [event.property_key for event in events] == [ServerKey.SERVER_HOST]
        assert url.get() == "http://other.org:8080"

    def test_transitive_reference_events(self, manager):
        manager.load()
        manager.set(ServerKey.SERVER_HOST, "${extra}")
        url = manager.get_managed_property(ServerKey.SERVER_URL)
        events = []
        url.add_listener(events.append)

        manager.set(ServerKey.EXTRA, "proxy")

        assert [event.property_key for event in events] == [ServerKey.EXTRA]
        assert url.get() == "http://proxy:8080"

    def test_cyclic_value_does_not_break_dispatch(self, manager):
        manager.load()
        manager.set(ServerKey.SERVER_HOST, "${server.url}")
        url = manager.get_managed_property(ServerKey.SERVER_URL)
        events = []
        url.add_listener(events.append)

        manager.set(ServerKey.SERVER_PORT, 1)

        assert [event.property_key for event in events] == [ServerKey.SERVER_PORT]

    def test_remove_listener(self, manager):
        manager.load()
        port = manager.get_managed_property(ServerKey.SERVER_PORT)
        events = []
        port.add_listener(events.append)
        port.remove_listener(events.append)

        manager.set(ServerKey.SERVER_PORT, 9090)

        assert events == []
