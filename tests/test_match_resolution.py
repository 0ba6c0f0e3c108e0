import pytest

from match3.components.resolution import (
    ClearPhase,
    ClearReason,
    GravityPhase,
    RefillPhase,
    SpecialsPhase,
)
from match3.components.tile import TileKind
from match3.events.bus import (
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_LIMIT_REACHED,
    EVENT_COMBO_MILESTONE,
    EVENT_GRAVITY_APPLIED,
    EVENT_MATCH_CLEARED,
    EVENT_MATCH_FOUND,
    EVENT_REFILL_COMPLETED,
    EVENT_SCORE_EARNED,
    EVENT_SPECIALS_CREATED,
)
from match3.systems.board_ops import MatchResult, MatchShape
from match3.systems.match_resolution import MatchResolutionSystem
from tests.helpers import build_board, diagonal_layout

PHASE_ORDER = [SpecialsPhase, ClearPhase, GravityPhase, RefillPhase]


def _resolver(layout, **kwargs):
    world, bus, board = build_board(layout, seed=kwargs.pop('seed', 1234))
    return world, bus, board, MatchResolutionSystem(world, bus, board, **kwargs)


def _bottom_three():
    return diagonal_layout(5, 5, {(0, 4): 'P', (1, 4): 'P', (2, 4): 'P'})


def _guaranteed_cascade():
    # Clearing the purple run drops the two yellows beside the yellow at (3, 4).
    return diagonal_layout(5, 5, {
        (0, 4): 'P', (1, 4): 'P', (2, 4): 'P', (3, 4): 'Y',
        (1, 3): 'Y', (2, 3): 'Y',
    })


def test_three_in_a_row_clears_drops_and_refills():
    world, bus, board, resolver = _resolver(_bottom_three())
    matched_ids = {board.get_tile(col, 4).id for col in range(3)}
    report = resolver.resolve()

    specials, clear, gravity, refill = report.phases[:4]
    assert specials.created == ()
    assert {entry.tile.id for entry in clear.cleared} == matched_ids
    assert all(entry.reason == ClearReason.MATCH for entry in clear.cleared)
    assert clear.score == 30 and clear.combo == 1
    assert report.level_scores[0] == 30
    assert len(gravity.moves) == 12
    assert all(move.distance == 1 for move in gravity.moves)
    assert len(refill.spawned) == 3
    assert {spawn.tile.cell for spawn in refill.spawned} == {(0, 0), (1, 0), (2, 0)}
    assert all(spawn.drop_offset == 1 for spawn in refill.spawned)

    assert board.is_full()
    assert board.find_matches() == []
    for tile_id in matched_ids:
        assert not world.entity_exists(tile_id)


def test_phases_always_come_in_order():
    world, bus, board, resolver = _resolver(_guaranteed_cascade())
    report = resolver.resolve()
    types = [type(phase) for phase in report.phases]
    assert len(types) == 4 * report.levels
    assert types == PHASE_ORDER * report.levels
    assert [phase.depth for phase in report.phases_of(ClearPhase)] == list(range(1, report.levels + 1))


def test_four_in_a_row_leaves_a_striped_tile_at_the_middle():
    layout = diagonal_layout(5, 5, {(0, 4): 'P', (1, 4): 'P', (2, 4): 'P', (3, 4): 'P'})
    world, bus, board, resolver = _resolver(layout)
    origin = board.get_tile(1, 4)
    report = resolver.resolve()

    specials = report.phases_of(SpecialsPhase)[0]
    assert [(tile.id, tile.kind, tile.cell) for tile in specials.created] == [
        (origin.id, TileKind.STRIPED_H, (1, 4))
    ]
    first_clear = report.phases_of(ClearPhase)[0]
    assert len(first_clear.cleared) == 3
    assert origin.id not in {entry.tile.id for entry in first_clear.cleared}
    assert board.locate(origin.id) == (1, 4)
    assert board.get_tile(1, 4).kind == TileKind.STRIPED_H


def test_cascade_increases_combo_and_score():
    world, bus, board, resolver = _resolver(_guaranteed_cascade())
    report = resolver.resolve()
    clears = report.phases_of(ClearPhase)
    assert report.levels >= 2
    assert clears[0].score == 30
    assert clears[1].combo == 2
    assert clears[1].score >= 60
    assert report.combo >= 2
    assert report.total_score == sum(clear.score for clear in clears)
    assert not report.depth_limit_reached
    assert board.find_matches() == []


def test_depth_cap_stops_resolution_and_reports_it():
    world, bus, board, resolver = _resolver(_guaranteed_cascade(), max_cascade_depth=1)
    limits = []
    bus.subscribe(EVENT_CASCADE_LIMIT_REACHED, lambda s, **k: limits.append(k))
    report = resolver.resolve()
    assert report.levels == 1
    assert report.depth_limit_reached
    assert limits == [{'depth': 1, 'limit': 1}]
    assert board.find_matches(), 'Stopping early leaves the cascade match in place'


def test_resolve_without_matches_returns_empty_report():
    world, bus, board, resolver = _resolver(diagonal_layout(5, 5))
    completed = []
    bus.subscribe(EVENT_CASCADE_COMPLETE, lambda s, **k: completed.append(k['report']))
    before = board.snapshot()
    report = resolver.resolve()
    assert report.phases == ()
    assert report.total_score == 0 and report.combo == 0 and report.levels == 0
    assert completed == [report]
    assert resolver.last_report is report
    assert board.snapshot() == before


def test_sweep_resolves_matches_missed_by_the_cascade_loop(monkeypatch):
    world, bus, board, resolver = _resolver(_bottom_three())
    real_find = board.find_matches
    calls = []

    def flaky_find():
        calls.append(1)
        return [] if len(calls) == 1 else real_find()

    monkeypatch.setattr(board, 'find_matches', flaky_find)
    report = resolver.resolve()
    assert report.sweep_restarts == 1
    assert report.levels >= 1
    assert report.phases_of(ClearPhase)[0].combo == 1
    assert real_find() == []


def test_iter_phases_commits_each_phase_before_yielding():
    world, bus, board, resolver = _resolver(_bottom_three())
    phases = resolver.iter_phases()

    specials = next(phases)
    assert isinstance(specials, SpecialsPhase)
    assert board.get_tile(0, 4) is not None

    clear = next(phases)
    assert isinstance(clear, ClearPhase)
    assert all(board.get_tile(col, 4) is None for col in range(3))

    gravity = next(phases)
    assert isinstance(gravity, GravityPhase)
    assert all(board.get_tile(col, 0) is None for col in range(3))
    assert board.get_tile(0, 4) is not None

    refill = next(phases)
    assert isinstance(refill, RefillPhase)
    assert board.is_full()

    for _ in phases:
        pass
    assert resolver.last_report is not None
    assert resolver.last_report.phases[:4] == (specials, clear, gravity, refill)


def test_events_follow_each_phase():
    world, bus, board, resolver = _resolver(_bottom_three())
    seen = []
    for name in (
        EVENT_MATCH_FOUND,
        EVENT_SPECIALS_CREATED,
        EVENT_MATCH_CLEARED,
        EVENT_SCORE_EARNED,
        EVENT_GRAVITY_APPLIED,
        EVENT_REFILL_COMPLETED,
        EVENT_CASCADE_COMPLETE,
    ):
        bus.subscribe(name, lambda s, _name=name, **k: seen.append((_name, k)))
    resolver.resolve()
    names = [name for name, _ in seen]
    assert names[:6] == [
        EVENT_MATCH_FOUND,
        EVENT_SPECIALS_CREATED,
        EVENT_MATCH_CLEARED,
        EVENT_SCORE_EARNED,
        EVENT_GRAVITY_APPLIED,
        EVENT_REFILL_COMPLETED,
    ]
    assert names[-1] == EVENT_CASCADE_COMPLETE
    score = next(payload for name, payload in seen if name == EVENT_SCORE_EARNED)
    assert score == {'points': 30, 'combo': 1, 'depth': 1}


def _row_match(board, row, cols):
    tiles = tuple(board.get_tile(col, row) for col in cols)
    return MatchResult(tiles=tiles, special=None, origin=tiles[1].cell, shape=MatchShape.HORIZONTAL)


@pytest.mark.parametrize(
    'code, cell, reason, expected',
    [
        ('h', (1, 2), ClearReason.ROW, 5),
        ('v', (1, 2), ClearReason.COLUMN, 7),
        ('b', (2, 2), ClearReason.AREA_3X3, 9),
        ('w', (2, 2), ClearReason.AREA_5X5, 25),
    ],
)
def test_special_in_a_match_clears_its_footprint(code, cell, reason, expected):
    world, bus, board, resolver = _resolver(diagonal_layout(5, 5, {cell: code}))
    match = _row_match(board, 2, range(cell[0] - 1, cell[0] + 2))
    cleared, activations = resolver.collect_clear_set([match], set())

    assert [(a.special.cell, a.reason) for a in activations] == [(cell, reason)]
    assert len(cleared) == expected
    assert len({entry.tile.id for entry in cleared}) == expected
    by_cell = {entry.tile.cell: entry.reason for entry in cleared}
    for tile in match.tiles:
        assert by_cell[tile.cell] == ClearReason.MATCH
    assert set(activations[0].cells) <= set(by_cell)


def test_wrapped_footprint_is_clipped_at_the_corner():
    world, bus, board, resolver = _resolver(diagonal_layout(5, 5, {(0, 0): 'w'}))
    match = _row_match(board, 0, range(0, 3))
    cleared, activations = resolver.collect_clear_set([match], set())
    assert len(activations[0].cells) == 9
    assert len(cleared) == 9


def test_freshly_created_special_does_not_activate_or_clear():
    world, bus, board, resolver = _resolver(diagonal_layout(5, 5, {(1, 2): 'h'}))
    match = _row_match(board, 2, range(0, 3))
    origin = board.get_tile(1, 2)
    cleared, activations = resolver.collect_clear_set([match], {origin.id})
    assert activations == []
    assert {entry.tile.cell for entry in cleared} == {(0, 2), (2, 2)}


def test_footprint_specials_do_not_chain():
    layout = diagonal_layout(5, 5, {(1, 2): 'h', (4, 2): 'v'})
    world, bus, board, resolver = _resolver(layout)
    match = _row_match(board, 2, range(0, 3))
    cleared, activations = resolver.collect_clear_set([match], set())
    assert len(activations) == 1
    assert {entry.tile.cell for entry in cleared} == {(col, 2) for col in range(5)}


def test_combo_milestone_fires_once_when_combo_reaches_four(monkeypatch):
    world, bus, board, resolver = _resolver(_bottom_three())
    real_spawn = board.create_random_tile
    spawned = []

    def purple_then_random():
        # Three purple refills in a row along the top keep the cascade going.
        spawned.append(1)
        if len(spawned) <= 9:
            return board.create_tile(TileKind.PURPLE)
        return real_spawn()

    monkeypatch.setattr(board, 'create_random_tile', purple_then_random)
    milestones = []
    bus.subscribe(EVENT_COMBO_MILESTONE, lambda s, **k: milestones.append(k))
    report = resolver.resolve()

    clears = report.phases_of(ClearPhase)
    assert report.levels >= 4
    assert [clear.combo for clear in clears[:4]] == [1, 2, 3, 4]
    assert milestones == [{'combo': 4}]
    assert board.find_matches() == []
