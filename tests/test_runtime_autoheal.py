from __future__ import annotations

import pytest

from src.runtime_autoheal import AutoFixConfig, apply_auto_fix_decision, decide_auto_fix


def test_not_armed_does_nothing():
    cfg = AutoFixConfig(enabled=True, max_attempts=2)
    d = decide_auto_fix(armed=False, attempts=0, rendered=False, cfg=cfg)
    assert d.allowed is False
    assert d.reason == "not_armed"
    assert d.disarm is False
    assert apply_auto_fix_decision(attempts=1, decision=d) == 1


def test_first_failure_is_allowed():
    cfg = AutoFixConfig(enabled=True, max_attempts=2)
    d = decide_auto_fix(armed=True, attempts=0, rendered=False, cfg=cfg)
    assert d.allowed is True
    assert d.attempts == 1
    assert d.disarm is True
    assert apply_auto_fix_decision(attempts=0, decision=d) == 1


def test_max_attempts_blocks_after_limit():
    cfg = AutoFixConfig(enabled=True, max_attempts=2)
    d = decide_auto_fix(armed=True, attempts=2, rendered=False, cfg=cfg)
    assert d.allowed is False
    assert d.reason == "max_attempts"
    assert apply_auto_fix_decision(attempts=2, decision=d) == 2


def test_render_resets_counter():
    cfg = AutoFixConfig(enabled=True, max_attempts=2)
    d = decide_auto_fix(armed=True, attempts=2, rendered=True, cfg=cfg)
    assert d.reset is True
    assert d.reason == "rendered"
    assert apply_auto_fix_decision(attempts=2, decision=d) == 0


def test_disabled_still_disarms():
    cfg = AutoFixConfig(enabled=False, max_attempts=2)
    d = decide_auto_fix(armed=True, attempts=0, rendered=False, cfg=cfg)
    assert d.allowed is False
    assert d.reason == "disabled"
    assert d.disarm is True


def test_config_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EDIT_AUTOFIX_ENABLED", "off")
    monkeypatch.setenv("EDIT_AUTOFIX_MAX_ATTEMPTS", "5")
    cfg = AutoFixConfig.from_env()
    assert cfg.enabled is False
    assert cfg.max_attempts == 5

    monkeypatch.setenv("EDIT_AUTOFIX_MAX_ATTEMPTS", "many")
    assert AutoFixConfig.from_env().max_attempts == 2
