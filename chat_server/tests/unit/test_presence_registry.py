# chat_server/tests/unit/test_presence_registry.py
import threading

import pytest

from chat_server.realtime.presence import NO_TRANSITION, PresenceRegistry
from chat_server.tests.helpers import FakeConnection, identity


@pytest.fixture
def registry():
    return PresenceRegistry()


def test_first_connection_transitions_online(registry):
    transition = registry.register_connection(1, FakeConnection(identity(1)))

    assert transition.transitioned
    assert transition.to_online
    assert registry.is_online(1)
    assert registry.connection_count(1) == 1


def test_registering_same_handle_twice_is_idempotent(registry):
    connection = FakeConnection(identity(1))
    registry.register_connection(1, connection)

    assert registry.register_connection(1, connection) == NO_TRANSITION
    assert registry.connection_count(1) == 1


def test_only_last_deregistration_transitions_offline(registry):
    connections = [FakeConnection(identity(7)) for _ in range(3)]
    transitions = [registry.register_connection(7, c) for c in connections]
    assert [t.transitioned for t in transitions] == [True, False, False]

    offline_edges = 0
    for connection in connections[:-1]:
        transition = registry.deregister_connection(7, connection)
        offline_edges += transition.transitioned
        assert registry.is_online(7)
    last = registry.deregister_connection(7, connections[-1])
    offline_edges += last.transitioned

    assert last.transitioned and not last.to_online
    assert offline_edges == 1
    assert not registry.is_online(7)
    assert 7 not in registry.all_online_user_ids()


def test_deregistering_unknown_handle_is_a_noop(registry):
    registry.register_connection(1, FakeConnection(identity(1)))

    assert registry.deregister_connection(1, FakeConnection(identity(1))) == NO_TRANSITION
    assert registry.deregister_connection(2, FakeConnection(identity(2))) == NO_TRANSITION
    assert registry.is_online(1)


def test_concurrent_registrations_produce_one_online_edge(registry):
    results = []
    barrier = threading.Barrier(8)

    def register():
        connection = FakeConnection(identity(3))
        barrier.wait()
        results.append(registry.register_connection(3, connection))

    threads = [threading.Thread(target=register) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(t.transitioned for t in results) == 1
    assert registry.connection_count(3) == 8


def test_lookups_span_users(registry):
    a1, a2, b1 = FakeConnection(identity(1)), FakeConnection(identity(1)), FakeConnection(identity(2))
    registry.register_connection(1, a1)
    registry.register_connection(1, a2)
    registry.register_connection(2, b1)

    assert registry.all_online_user_ids() == {1, 2}
    assert {c.id for c in registry.connections_for(1)} == {a1.id, a2.id}
    assert len(registry.all_connections()) == 3
    assert registry.connections_for(99) == []
