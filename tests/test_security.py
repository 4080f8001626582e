import logging

import pytest

from app_state import Authenticated, Locked
from feature_flags import FeatureFlag
from security import AutoLockMonitor
from state_manager import AppStateManager


@pytest.fixture
def manager(user):
    manager = AppStateManager()
    manager.authenticate(user)
    return manager


@pytest.fixture
def monitor(manager, debug_flags, clock):
    debug_flags.set_enabled(FeatureFlag.ENABLE_AUTO_LOCK, True)
    return AutoLockMonitor(manager, debug_flags, timeout_seconds=60, clock=clock)


class TestAutoLock:

    def test_locks_after_timeout(self, monitor, manager, clock, user):
        clock.advance(59)
        assert monitor.check() is False

        clock.advance(1)
        assert monitor.check() is True
        assert manager.current_state == Locked(user)

    def test_activity_postpones_lock(self, monitor, clock):
        clock.advance(50)
        monitor.record_activity()
        clock.advance(50)
        assert monitor.check() is False
        assert monitor.idle_seconds == 50

    def test_disabled_flag_never_locks(self, monitor, debug_flags, clock):
        debug_flags.set_enabled(FeatureFlag.ENABLE_AUTO_LOCK, False)
        clock.advance(3600)
        assert monitor.check() is False

    def test_already_locked(self, monitor, manager, clock):
        manager.lock()
        clock.advance(120)
        assert monitor.check() is False

    def test_signed_out_cannot_lock(self, monitor, manager, clock):
        manager.logout()
        clock.advance(120)
        assert monitor.check() is False

    def test_activity_while_locked_is_ignored(self, monitor, manager, clock):
        manager.lock()
        before = monitor.last_activity
        clock.advance(30)
        monitor.record_activity()
        assert monitor.last_activity == before

    def test_unlock_resets_idle_time(self, monitor, manager, clock, user):
        clock.advance(61)
        monitor.check()
        clock.advance(10)

        manager.unlock()

        assert manager.current_state == Authenticated(user)
        assert monitor.idle_seconds == 0
        assert monitor.check() is False

    def test_logs_auto_lock(self, monitor, clock, caplog):
        caplog.set_level(logging.INFO, logger="SecureDesk")
        clock.advance(90)
        monitor.check()
        assert "auto-locked after 90 seconds" in caplog.text

    def test_detach(self, monitor, manager, clock):
        monitor.detach()
        clock.advance(61)
        monitor.check()
        manager.unlock()
        assert monitor.idle_seconds == 61
