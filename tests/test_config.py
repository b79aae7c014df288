import pytest

from wait_for.config import WaitConfig
from wait_for.errors import InvalidDuration


def test_defaults_without_environment(monkeypatch):
    for key in ("WAIT_FOR_TIMEOUT", "WAIT_FOR_POLL_FREQ", "WAIT_FOR_STATUS_FREQ", "WAIT_FOR_QUIET"):
        monkeypatch.delenv(key, raising=False)
    assert WaitConfig.from_env() == WaitConfig(timeout=5.0, poll_interval=0.5, status_interval=1.0, quiet=False)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WAIT_FOR_TIMEOUT", "1m")
    monkeypatch.setenv("WAIT_FOR_POLL_FREQ", "250ms")
    monkeypatch.setenv("WAIT_FOR_STATUS_FREQ", "2s")
    monkeypatch.setenv("WAIT_FOR_QUIET", "yes")
    assert WaitConfig.from_env() == WaitConfig(timeout=60.0, poll_interval=0.25, status_interval=2.0, quiet=True)


def test_invalid_environment_duration(monkeypatch):
    monkeypatch.setenv("WAIT_FOR_TIMEOUT", "forever")
    with pytest.raises(InvalidDuration):
        WaitConfig.from_env()


def test_override_ignores_missing_values():
    config = WaitConfig().override(timeout=2.0, quiet=None)
    assert config == WaitConfig(timeout=2.0)
