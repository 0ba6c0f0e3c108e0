from dataclasses import dataclass


@dataclass(slots=True)
class SessionState:
    """Tracks the player-facing session shared across systems."""

    moves_left: int = 0
    score: int = 0
    locked: bool = False
    last_combo: int = 0
    reshuffles: int = 0
