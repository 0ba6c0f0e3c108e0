from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # weak=False keeps bound methods of systems that are not stored in a variable alive.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# BOARD
# ============================================================================
EVENT_BOARD_READY = "board_ready"                  # payload: cols=int, rows=int
EVENT_TILE_SWAPPED = "tile_swapped"                # payload: src=(c,r), dst=(c,r)
EVENT_RESHUFFLE_COMMITTED = "reshuffle_committed"  # payload: converged=bool, attempts=int


# ============================================================================
# PLAYER SWAPS
# ============================================================================
EVENT_TILE_SWAP_REQUEST = "tile_swap_request"      # payload: src=(c,r), dst=(c,r)
EVENT_TILE_SWAP_VALID = "tile_swap_valid"          # payload: src=(c,r), dst=(c,r), moves_left=int
EVENT_TILE_SWAP_INVALID = "tile_swap_invalid"      # payload: src=(c,r), dst=(c,r), reason=str


# ============================================================================
# CASCADE RESOLUTION
# ============================================================================
EVENT_MATCH_FOUND = "match_found"                  # payload: depth=int, matches=list[MatchResult]
EVENT_SPECIALS_CREATED = "specials_created"        # payload: phase=SpecialsPhase
EVENT_MATCH_CLEARED = "match_cleared"              # payload: phase=ClearPhase
EVENT_GRAVITY_APPLIED = "gravity_applied"          # payload: phase=GravityPhase
EVENT_REFILL_COMPLETED = "refill_completed"        # payload: phase=RefillPhase
EVENT_CASCADE_STEP = "cascade_step"                # payload: depth=int, combo=int
EVENT_CASCADE_COMPLETE = "cascade_complete"        # payload: report=ResolutionReport
EVENT_CASCADE_LIMIT_REACHED = "cascade_limit_reached"  # payload: depth=int, limit=int
EVENT_SCORE_EARNED = "score_earned"                # payload: points=int, combo=int, depth=int
EVENT_COMBO_MILESTONE = "combo_milestone"          # payload: combo=int


# ============================================================================
# SESSION
# ============================================================================
EVENT_DEADLOCK_DETECTED = "deadlock_detected"      # payload: attempt=int
EVENT_HINT_READY = "hint_ready"                    # payload: hint=MoveHint
EVENT_SESSION_RESET = "session_reset"              # payload: moves_left=int
