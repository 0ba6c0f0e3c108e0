GRID_ROWS = 8
GRID_COLS = 8

# Match-length thresholds for special creation.
MATCH_MIN_LENGTH = 3
STRIPED_LENGTH = 4
COLOR_BOMB_LENGTH = 5
# Either segment of an intersection at or above this length upgrades bomb -> wrapped.
WRAPPED_SEGMENT_LENGTH = 4

# Activation footprints, as a radius around the special (1 -> 3x3, 2 -> 5x5).
BOMB_RADIUS = 1
WRAPPED_RADIUS = 2

POINTS_PER_TILE = 10
# Combo level that triggers the dedicated "combo" cue for collaborators.
COMBO_MILESTONE = 4

RESHUFFLE_MAX_ATTEMPTS = 100
# Total cascade levels allowed in one resolution run, sweep restarts included.
MAX_CASCADE_DEPTH = 50
# Consecutive reshuffles the session performs while the board stays deadlocked.
MAX_DEADLOCK_RESHUFFLES = 10

DEFAULT_MOVE_BUDGET = 30
