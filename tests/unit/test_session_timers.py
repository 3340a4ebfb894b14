"""Unit tests for the restartable session timers."""

import pytest
import threading

from jarvis_client.services.session_timers import SessionTimer, TimerPair


@pytest.mark.unit
class TestSessionTimer:
    """Test SessionTimer with injected fake timers."""
    
    def test_arm_starts_timer(self, timer_factory):
        timer = SessionTimer("silence", timer_factory)
        calls = []
        
        timer.arm(1.5, lambda: calls.append("fired"))
        
        assert timer.is_armed
        assert len(timer_factory.pending(1.5)) == 1
        timer_factory.pending(1.5)[0].fire()
        assert calls == ["fired"]
        assert not timer.is_armed
    
    def test_rearm_replaces_pending_countdown(self, timer_factory):
        timer = SessionTimer("silence", timer_factory)
        calls = []
        
        timer.arm(1.5, lambda: calls.append("first"))
        first = timer_factory.timers[0]
        timer.arm(1.5, lambda: calls.append("second"))
        
        assert first.cancelled
        # Even if the old thread had already woken up, it must not fire
        first.function()
        assert calls == []
        
        timer_factory.timers[1].fire()
        assert calls == ["second"]
    
    def test_cancel_is_idempotent(self, timer_factory):
        timer = SessionTimer("no_speech", timer_factory)
        
        timer.cancel()
        timer.arm(3.0, lambda: None)
        timer.cancel()
        timer.cancel()
        
        assert not timer.is_armed
        assert timer_factory.pending() == []
    
    def test_cancel_after_fire_is_harmless(self, timer_factory):
        timer = SessionTimer("no_speech", timer_factory)
        timer.arm(3.0, lambda: None)
        timer_factory.timers[0].fire()
        
        timer.cancel()
        
        assert not timer.is_armed
    
    def test_real_timer_fires(self):
        timer = SessionTimer("silence")
        fired = threading.Event()
        
        timer.arm(0.05, fired.set)
        
        assert fired.wait(2.0)
        assert not timer.is_armed
    
    def test_real_timer_cancelled_never_fires(self):
        timer = SessionTimer("silence")
        fired = threading.Event()
        
        timer.arm(0.1, fired.set)
        timer.cancel()
        
        assert not fired.wait(0.3)


@pytest.mark.unit
def test_timer_pair_cancel_all(timer_factory):
    timers = TimerPair(timer_factory)
    timers.silence.arm(1.5, lambda: None)
    timers.no_speech.arm(3.0, lambda: None)
    assert timers.any_armed
    
    timers.cancel_all()
    
    assert not timers.any_armed
    assert timer_factory.pending() == []
