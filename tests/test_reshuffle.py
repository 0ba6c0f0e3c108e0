from match3.components.tile import BASE_COLORS, TileKind
from match3.events.bus import EVENT_RESHUFFLE_COMMITTED
from tests.helpers import build_board


def _six_color_layout(cols, rows):
    return [[BASE_COLORS[(col + 2 * row) % 6] for col in range(cols)] for row in range(rows)]


def test_reshuffle_preserves_tiles_and_clears_matches():
    world, bus, board = build_board(_six_color_layout(5, 5), seed=99)
    before = {(tile.id, tile.kind) for row in board.snapshot() for tile in row}
    result = board.reshuffle()
    assert result.converged
    assert 1 <= result.attempts <= 100
    assert board.find_matches() == []
    after = {(tile.id, tile.kind) for row in board.snapshot() for tile in row}
    assert after == before, 'Reshuffle must keep every tile identity and kind'
    for tile_id, _ in after:
        col, row = board.locate(tile_id)
        assert board.get_tile(col, row).id == tile_id


def test_reshuffle_that_cannot_converge_commits_last_arrangement():
    layout = [[TileKind.RED] * 3 for _ in range(3)]
    world, bus, board = build_board(layout)
    committed = {}
    bus.subscribe(EVENT_RESHUFFLE_COMMITTED, lambda s, **k: committed.update(k))
    result = board.reshuffle()
    assert not result.converged
    assert result.attempts == 100
    assert committed == {'converged': False, 'attempts': 100}
    assert board.is_full()
    assert board.find_matches(), 'Best-effort arrangement still holds matches'


def test_reshuffle_honours_attempt_budget():
    layout = [[TileKind.BLUE] * 4 for _ in range(4)]
    world, bus, board = build_board(layout)
    result = board.reshuffle(max_attempts=5)
    assert result.attempts == 5
    assert not result.converged
