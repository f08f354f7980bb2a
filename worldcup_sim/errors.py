from __future__ import annotations

from dataclasses import dataclass


class TournamentError(ValueError):
    pass


class ConfigurationError(TournamentError):
    pass


class QualificationError(ConfigurationError):
    def __init__(self, qualified: int, expected: int):
        self.qualified = int(qualified)
        self.expected = int(expected)
        super().__init__(f"{self.qualified} teams qualified, expected {self.expected}")


class StageTransitionError(TournamentError):
    pass


class DrawLockedError(StageTransitionError):
    pass


class MatchStateError(TournamentError):
    pass


@dataclass(frozen=True)
class TransitionCheck:
    ok: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_failure(self, exc_type=StageTransitionError) -> None:
        if not self.ok:
            raise exc_type(self.message)


ALLOWED = TransitionCheck(ok=True)
