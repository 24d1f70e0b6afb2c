"""Tests for mindmark.sync.window — the suppression window state machine.

Covers:
- Idle until armed
- Active strictly before the deadline, idle at and after it
- Re-arming extends rather than stacks
- cancel() returns to idle
"""

from mindmark.sync.window import DEFAULT_WINDOW_MS, SuppressionWindow


class TestSuppressionWindow:
    """Tests for SuppressionWindow."""

    def test_idle_initially(self, window):
        assert window.state == "idle"
        assert window.until is None
        assert not window.is_active()

    def test_default_length(self):
        assert SuppressionWindow().window_ms == DEFAULT_WINDOW_MS == 300

    def test_active_until_deadline(self, window, clock):
        window.arm()
        assert window.until == clock.now + 0.3
        clock.advance(299)
        assert window.is_active()
        assert window.state == "suppressed"

    def test_expires_at_deadline(self, window, clock):
        window.arm()
        clock.advance(300)
        assert not window.is_active()
        assert window.until is None

    def test_rearm_extends_deadline(self, window, clock):
        window.arm()
        clock.advance(200)
        window.arm()
        clock.advance(200)
        assert window.is_active()
        clock.advance(150)
        assert not window.is_active()

    def test_cancel(self, window):
        window.arm()
        window.cancel()
        assert window.state == "idle"
