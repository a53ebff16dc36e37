from __future__ import annotations

from dataclasses import dataclass

from src.editing import config


@dataclass
class AutoFixConfig:
    enabled: bool = True
    max_attempts: int = 2

    @classmethod
    def from_env(cls) -> AutoFixConfig:
        return cls(enabled=config.autofix_enabled(), max_attempts=config.autofix_max_attempts())


@dataclass(frozen=True)
class AutoFixDecision:
    allowed: bool
    reason: str | None = None
    attempts: int | None = None
    # Consume the one-shot watch.
    disarm: bool = False
    # Preview rendered after a commit: the attempt counter starts over.
    reset: bool = False


def decide_auto_fix(
    *,
    armed: bool,
    attempts: int,
    rendered: bool,
    cfg: AutoFixConfig,
) -> AutoFixDecision:
    """Pure decision helper for the preview outcome that follows a commit.

    This does not mutate anything. Call `apply_auto_fix_decision(...)` to get
    the next attempt counter once the decision has been acted upon.
    """
    if not armed:
        return AutoFixDecision(allowed=False, reason="not_armed")

    if rendered:
        return AutoFixDecision(allowed=False, reason="rendered", disarm=True, reset=True, attempts=0)

    if not cfg.enabled:
        return AutoFixDecision(allowed=False, reason="disabled", disarm=True, attempts=attempts)

    if int(attempts) >= int(cfg.max_attempts):
        return AutoFixDecision(
            allowed=False, reason="max_attempts", disarm=True, attempts=int(attempts)
        )

    return AutoFixDecision(allowed=True, disarm=True, attempts=int(attempts) + 1)


def apply_auto_fix_decision(*, attempts: int, decision: AutoFixDecision) -> int:
    """Return the attempt counter after `decision` has been acted upon."""
    if decision.reset:
        return 0
    if decision.allowed and decision.attempts is not None:
        return int(decision.attempts)
    return int(attempts)
