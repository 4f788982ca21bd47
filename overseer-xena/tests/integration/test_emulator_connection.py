"""Integration tests driving connect() against the TCP chassis emulator."""

from __future__ import annotations

import threading

import pytest

from overseer_core.errors import (
    AuthenticationError,
    InternalConsistencyError,
    NotAcknowledgedError,
)
from overseer_core.types.reservation import Lock

from overseer_xena.config import SessionConfig
from overseer_xena.connection import connect
from overseer_xena.server import EmulatorServer

pytestmark = pytest.mark.integration


class TestEmulatorConnection:
    """Full session lifecycle against the emulator."""

    def test_list_fresh_chassis(self, emulator_address: str) -> None:
        with connect(emulator_address) as conn:
            interfaces = conn.list_interfaces()
        assert len(interfaces) == 8
        assert all(state.lock is Lock.RELEASED for _, _, state in interfaces)

    def test_toggle_cycle(self, emulator_address: str) -> None:
        with connect(emulator_address) as conn:
            current = conn.list_interfaces().lock_of(0, 1)
            assert current is Lock.RELEASED
            conn.lock_action_on(current, 0, 1)

            current = conn.list_interfaces().lock_of(0, 1)
            assert current is Lock.RESERVED_BY_YOU
            conn.lock_action_on(current, 0, 1)

            assert conn.list_interfaces().lock_of(0, 1) is Lock.RELEASED

    def test_relinquish_other_owner(
        self, emulator_server: EmulatorServer, emulator_address: str
    ) -> None:
        with connect(emulator_address, SessionConfig(owner="alice")) as alice:
            alice.lock_interface(1, 2)
            with connect(emulator_address, SessionConfig(owner="bob")) as bob:
                current = bob.list_interfaces().lock_of(1, 2)
                assert current is Lock.RESERVED_BY_OTHER
                with pytest.raises(NotAcknowledgedError):
                    bob.unlock_interface(1, 2)
                bob.lock_action_on(current, 1, 2)
                assert bob.list_interfaces().lock_of(1, 2) is Lock.RELEASED
        assert emulator_server.chassis.owner_of(1, 2) is None

    def test_stale_lock_is_refused(self, emulator_address: str) -> None:
        with connect(emulator_address) as conn:
            conn.lock_interface(0, 0)
            with pytest.raises(NotAcknowledgedError):
                conn.lock_action_on(Lock.RELEASED, 0, 0)
            assert conn.list_interfaces().lock_of(0, 0) is Lock.RESERVED_BY_YOU

    def test_wrong_password(self, emulator_address: str) -> None:
        with pytest.raises(AuthenticationError):
            connect(emulator_address, SessionConfig(password="wrong"))

    def test_clones_from_many_threads(
        self, emulator_server: EmulatorServer, emulator_address: str
    ) -> None:
        conn = connect(emulator_address)
        errors: list[BaseException] = []

        def worker(module: int) -> None:
            handle = conn.clone()
            try:
                for port in range(4):
                    handle.lock_interface(module, port)
                    assert handle.list_interfaces().lock_of(module, port) is Lock.RESERVED_BY_YOU
                    handle.unlock_interface(module, port)
            except BaseException as exc:  # pragma: no cover - reported below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(m,)) for m in (0, 1)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)
        conn.close()

        assert errors == []
        assert emulator_server.chassis.snapshot("overseer") == [
            (m, p, Lock.RELEASED) for m in (0, 1) for p in range(4)
        ]

    def test_close_logs_off_and_rejects_calls(
        self, emulator_server: EmulatorServer, emulator_address: str
    ) -> None:
        conn = connect(emulator_address)
        conn.lock_interface(0, 3)
        conn.close()
        with pytest.raises(InternalConsistencyError):
            conn.list_interfaces()
        # Reservations outlive the session on a real chassis.
        assert emulator_server.chassis.owner_of(0, 3) == "overseer"
