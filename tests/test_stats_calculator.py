from datetime import datetime, timedelta

import pytest

from exceptions import PlayerNotFoundError, WriteBackError
from repository import Repository
from stats_calculator import (
    STRATEGY_ROLLING,
    compute_player_updates,
    current_rank_map,
    next_best_rank,
    populate_historical_ranks,
    recalculate_all_stats,
)

BASE = datetime(2024, 5, 1, 12, 0)


def make_match(team1, team2, score1, score2, minutes=0):
    return {
        'team1': list(team1),
        'team2': list(team2),
        'score1': score1,
        'score2': score2,
        'is_double': len(team1) == 2,
        'played_at': BASE + timedelta(minutes=minutes),
    }


def make_players(*names, **best_ranks):
    return [{'id': i, 'name': name, 'best_rank': best_ranks.get(name)} for i, name in enumerate(names, start=1)]


def by_name(updates):
    return {u['name']: u for u in updates}


def test_singles_win_awards_margin_bonus():
    updates = by_name(compute_player_updates(make_players('Alice', 'Bob'),
                                             [make_match(['Alice'], ['Bob'], 21, 15)]))

    assert updates['Alice']['wins'] == 1
    assert updates['Alice']['points'] == 12
    assert updates['Alice']['history'] == ['W']
    assert updates['Bob']['losses'] == 1
    assert updates['Bob']['points'] == 0
    assert updates['Bob']['history'] == ['L']


def test_overtime_match_gives_loser_points():
    updates = by_name(compute_player_updates(make_players('Charlie', 'Diana'),
                                             [make_match(['Charlie'], ['Diana'], 21, 20)]))

    assert updates['Charlie']['points'] == 7
    assert updates['Diana']['points'] == 3


def test_doubles_credits_every_team_member():
    players = make_players('Alice', 'Bob', 'Charlie', 'Diana')
    updates = by_name(compute_player_updates(players,
                                             [make_match(['Alice', 'Bob'], ['Charlie', 'Diana'], 21, 19)]))

    assert updates['Alice']['points'] == 10
    assert updates['Bob']['points'] == 10
    assert updates['Charlie']['points'] == 0
    assert updates['Diana']['points'] == 0
    assert updates['Charlie']['history'] == ['L']


def test_history_follows_played_at_not_list_order():
    matches = [
        make_match(['Alice'], ['Bob'], 15, 21, minutes=30),
        make_match(['Alice'], ['Bob'], 21, 10, minutes=10),
        make_match(['Alice'], ['Bob'], 21, 18, minutes=20),
    ]
    updates = by_name(compute_player_updates(make_players('Alice', 'Bob'), matches))

    assert updates['Alice']['history'] == ['W', 'W', 'L']
    assert updates['Bob']['history'] == ['L', 'L', 'W']


def test_played_at_strings_are_ordered_chronologically():
    matches = [
        dict(make_match(['Alice'], ['Bob'], 15, 21), played_at='2024-05-02T10:00:00Z'),
        dict(make_match(['Alice'], ['Bob'], 21, 15), played_at='2024-05-01T10:00:00+00:00'),
    ]
    updates = by_name(compute_player_updates(make_players('Alice', 'Bob'), matches))

    assert updates['Alice']['history'] == ['W', 'L']


def test_unknown_players_are_skipped():
    updates = by_name(compute_player_updates(make_players('Alice'),
                                             [make_match(['Alice'], ['Ghost'], 21, 11)]))

    assert set(updates) == {'Alice'}
    assert updates['Alice']['wins'] == 1
    assert updates['Alice']['points'] == 14


def test_wins_and_losses_match_history():
    names = ['Alice', 'Bob', 'Carl', 'Dan']
    matches = [
        make_match(['Alice'], ['Bob'], 21, 17, minutes=1),
        make_match(['Carl', 'Dan'], ['Alice', 'Bob'], 23, 21, minutes=2),
        make_match(['Bob'], ['Carl'], 21, 20, minutes=3),
        make_match(['Alice', 'Dan'], ['Bob', 'Carl'], 12, 21, minutes=4),
        make_match(['Dan'], ['Alice'], 21, 3, minutes=5),
    ]
    for update in compute_player_updates(make_players(*names), matches):
        assert update['wins'] == update['history'].count('W')
        assert update['losses'] == update['history'].count('L')
        assert update['wins'] + update['losses'] == len(update['history'])


def test_recalculation_is_idempotent():
    players = make_players('Alice', 'Bob', 'Carl')
    matches = [
        make_match(['Alice'], ['Bob'], 21, 17, minutes=1),
        make_match(['Carl'], ['Alice'], 21, 5, minutes=2),
    ]
    first = compute_player_updates(players, matches)
    carried = [dict(p, best_rank=u['best_rank']) for p, u in zip(players, first)]
    second = compute_player_updates(carried, matches)

    assert first == second


def test_ranks_sort_by_points_then_wins():
    players = make_players('Alice', 'Bob', 'Carl', 'Dan')
    matches = [
        make_match(['Alice'], ['Dan'], 21, 1, minutes=1),   # Alice 19
        make_match(['Bob'], ['Dan'], 21, 19, minutes=2),    # Bob 10
        make_match(['Carl'], ['Dan'], 21, 20, minutes=3),   # Carl 7, Dan 3
    ]
    updates = by_name(compute_player_updates(players, matches))

    assert [updates[n]['rank'] for n in ('Alice', 'Bob', 'Carl', 'Dan')] == [1, 2, 3, 4]


def test_next_best_rank_only_tightens():
    assert next_best_rank(1, 3, has_matches=True) == 1
    assert next_best_rank(4, 2, has_matches=True) == 2
    assert next_best_rank(None, 3, has_matches=True) == 3


def test_best_rank_has_no_memory_without_matches():
    assert next_best_rank(1, 5, has_matches=False) == 5


def test_best_rank_carried_across_passes():
    players = make_players('Alice', 'Bob', Bob=1)
    updates = by_name(compute_player_updates(players, [make_match(['Alice'], ['Bob'], 21, 5)]))

    assert updates['Alice']['best_rank'] == 1
    assert updates['Bob']['rank'] == 2
    assert updates['Bob']['best_rank'] == 1


def test_rolling_window_drops_old_results():
    matches = [make_match(['Alice'], ['Bob'], 10, 21, minutes=i) for i in range(5)]
    matches += [make_match(['Alice'], ['Bob'], 21, 19, minutes=10 + i) for i in range(20)]
    players = make_players('Alice', 'Bob')

    full = by_name(compute_player_updates(players, matches))
    rolling = by_name(compute_player_updates(players, matches, strategy=STRATEGY_ROLLING))

    assert (full['Alice']['wins'], full['Alice']['losses']) == (20, 5)
    assert len(full['Alice']['history']) == 25
    assert (rolling['Alice']['wins'], rolling['Alice']['losses']) == (20, 0)
    assert rolling['Alice']['history'] == ['W'] * 20
    assert rolling['Bob']['points'] == 0


def test_rolling_window_size_is_configurable():
    matches = [make_match(['Alice'], ['Bob'], 21, 19, minutes=i) for i in range(5)]
    updates = by_name(compute_player_updates(make_players('Alice', 'Bob'), matches,
                                             strategy=STRATEGY_ROLLING, window_size=3))

    assert updates['Alice']['history'] == ['W', 'W', 'W']
    assert updates['Alice']['points'] == 30


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        compute_player_updates(make_players('Alice'), [], strategy='weekly')


def test_empty_dataset():
    assert compute_player_updates([], []) == []
    update = compute_player_updates(make_players('Alice'), [])[0]
    assert update['wins'] == 0
    assert update['history'] == []
    assert update['best_rank'] == 1


def test_recalculate_all_stats_persists_aggregates(repository):
    alice = repository.create_player({'name': 'Alice'})
    bob = repository.create_player({'name': 'Bob'})
    repository.create_match(make_match(['Alice'], ['Bob'], 21, 15))
    repository.create_match(make_match(['Bob'], ['Alice'], 21, 20, minutes=5))

    result = recalculate_all_stats(repository)

    assert [u['name'] for u in result] == ['Alice', 'Bob']
    stored = {p['name']: p for p in repository.list_players()}
    assert stored['Alice']['wins'] == 1
    assert stored['Alice']['losses'] == 1
    assert stored['Alice']['points'] == 15
    assert stored['Alice']['history'] == ['W', 'L']
    assert stored['Bob']['points'] == 7
    assert stored['Alice']['best_rank'] == 1
    assert alice['id'] != bob['id']

    recalculate_all_stats(repository)
    assert {p['name']: p for p in repository.list_players()}['Alice']['history'] == ['W', 'L']


class FlakyRepository(Repository):
    """In-memory repository whose saves fail for selected player ids"""

    def __init__(self, players, matches, failing_ids=()):
        self.players = players
        self.matches = matches
        self.failing_ids = set(failing_ids)
        self.saved = {}

    def list_players(self):
        return list(self.players)

    def list_matches(self):
        return list(self.matches)

    def save_player_aggregate(self, player_id, aggregate):
        if player_id in self.failing_ids:
            raise PlayerNotFoundError(player_id)
        self.saved[player_id] = aggregate
        return aggregate


def test_write_back_failure_does_not_stop_other_saves():
    players = make_players('Alice', 'Bob', 'Carl')
    repository = FlakyRepository(players, [make_match(['Alice'], ['Bob'], 21, 15)], failing_ids={2})

    with pytest.raises(WriteBackError) as excinfo:
        recalculate_all_stats(repository)

    assert set(excinfo.value.failures) == {'Bob'}
    assert set(repository.saved) == {1, 3}
    assert repository.saved[1]['points'] == 12


class CrashingRepository(FlakyRepository):
    def save_player_aggregate(self, player_id, aggregate):
        if player_id == 1:
            raise RuntimeError("connection reset")
        return super().save_player_aggregate(player_id, aggregate)


def test_unexpected_save_errors_are_collected_too():
    players = make_players('Alice', 'Bob', 'Carl')
    repository = CrashingRepository(players, [make_match(['Alice'], ['Bob'], 21, 15)])

    with pytest.raises(WriteBackError) as excinfo:
        recalculate_all_stats(repository)

    assert set(excinfo.value.failures) == {'Alice'}
    assert isinstance(excinfo.value.failures['Alice'], RuntimeError)
    assert set(repository.saved) == {2, 3}


def test_current_rank_map_uses_stored_aggregates():
    players = [
        {'name': 'Alice', 'points': 5, 'wins': 1},
        {'name': 'Bob', 'points': 30, 'wins': 3},
    ]
    assert current_rank_map(players) == {'Bob': 1, 'Alice': 2}


def test_populate_historical_ranks_fills_missing_snapshots(repository):
    repository.create_player({'name': 'Alice'})
    repository.create_player({'name': 'Bob'})
    repository.create_match(make_match(['Alice'], ['Bob'], 21, 15))
    recorded = repository.create_match(dict(make_match(['Bob'], ['Alice'], 21, 3, minutes=1),
                                            player_ranks={'Alice': 2, 'Bob': 1}))
    recalculate_all_stats(repository)

    assert populate_historical_ranks(repository) == (1, 0)
    matches = {m['id']: m for m in repository.list_matches()}
    assert matches[recorded['id']]['player_ranks'] == {'Alice': 2, 'Bob': 1}
    first = [m for m in matches.values() if m['id'] != recorded['id']][0]
    assert first['player_ranks'] == {'Bob': 1, 'Alice': 2}
