"""
Stat recalculation engine.

Player aggregates (wins, losses, points, history) are never updated
incrementally: every pass replays the match log from scratch and the
results overwrite what is stored. ``best_rank`` is the only field that
carries memory between passes.
"""
import logging

from exceptions import RepositoryError, WriteBackError
from head_to_head import losing_team, plays_in, sort_chronologically, team1_won, winning_team
from scoring import award_points, rank_players

logger = logging.getLogger(__name__)

STRATEGY_FULL = 'full'
STRATEGY_ROLLING = 'rolling'
STRATEGIES = (STRATEGY_FULL, STRATEGY_ROLLING)
DEFAULT_WINDOW_SIZE = 20

AGGREGATE_FIELDS = ('wins', 'losses', 'points', 'history', 'best_rank')


def empty_aggregate():
    return {'wins': 0, 'losses': 0, 'points': 0.0, 'history': []}


def apply_match(aggregates, match, max_points=None):
    """
    Fold one match into running aggregates.

    Names with no entry in ``aggregates`` are skipped silently, so a match
    referencing an unregistered player still credits everyone else.
    """
    if team1_won(match):
        winner_score, loser_score = match.get('score1', 0), match.get('score2', 0)
    else:
        winner_score, loser_score = match.get('score2', 0), match.get('score1', 0)

    pts = award_points(winner_score, loser_score, max_points=max_points)

    for name in winning_team(match):
        stats = aggregates.get(name)
        if stats is not None:
            stats['wins'] += 1
            stats['points'] += pts['winner']
            stats['history'].append('W')

    for name in losing_team(match):
        stats = aggregates.get(name)
        if stats is not None:
            stats['losses'] += 1
            stats['points'] += pts['loser']
            stats['history'].append('L')

    return aggregates


def full_history_aggregates(names, matches, max_points=None):
    """Replay every match in chronological order"""
    aggregates = {name: empty_aggregate() for name in names}
    for match in sort_chronologically(matches):
        apply_match(aggregates, match, max_points=max_points)
    return aggregates


def rolling_window_aggregates(names, matches, window_size=DEFAULT_WINDOW_SIZE, max_points=None):
    """Replay only each player's own last ``window_size`` matches"""
    ordered = sort_chronologically(matches)
    aggregates = {}
    for name in names:
        own_matches = [m for m in ordered if plays_in(name, m)]
        window = own_matches[-window_size:] if window_size > 0 else []
        single = {name: empty_aggregate()}
        for match in window:
            apply_match(single, match, max_points=max_points)
        aggregates[name] = single[name]
    return aggregates


def compute_aggregates(names, matches, strategy=STRATEGY_FULL,
                       window_size=DEFAULT_WINDOW_SIZE, max_points=None):
    if strategy == STRATEGY_FULL:
        return full_history_aggregates(names, matches, max_points=max_points)
    if strategy == STRATEGY_ROLLING:
        return rolling_window_aggregates(names, matches, window_size=window_size,
                                         max_points=max_points)
    raise ValueError(f"Unknown stats strategy '{strategy}', expected one of {STRATEGIES}")


def next_best_rank(previous_best, current_rank, has_matches):
    """Best rank only tightens, except for players without matches who take the current rank"""
    if not has_matches or not previous_best:
        return current_rank
    return min(previous_best, current_rank)


def compute_player_updates(players, matches, strategy=STRATEGY_FULL,
                           window_size=DEFAULT_WINDOW_SIZE, max_points=None):
    """
    Pure part of a recalculation pass.

    Returns one dict per player, in the input order, holding the new
    aggregates plus ``rank`` and the updated ``best_rank``.
    """
    names = [p['name'] for p in players]
    aggregates = compute_aggregates(names, matches, strategy=strategy,
                                    window_size=window_size, max_points=max_points)

    ranked = rank_players([dict(name=name, **aggregates[name]) for name in names])
    ranks = {}
    for position, entry in enumerate(ranked, start=1):
        ranks.setdefault(entry['name'], position)

    updates = []
    for player in players:
        stats = aggregates[player['name']]
        current_rank = ranks[player['name']]
        has_matches = stats['wins'] + stats['losses'] > 0
        updates.append({
            'id': player.get('id'),
            'name': player['name'],
            'wins': stats['wins'],
            'losses': stats['losses'],
            'points': stats['points'],
            'history': list(stats['history']),
            'rank': current_rank,
            'best_rank': next_best_rank(player.get('best_rank'), current_rank, has_matches),
        })
    return updates


def recalculate_all_stats(repository, strategy=STRATEGY_FULL,
                          window_size=DEFAULT_WINDOW_SIZE, max_points=None):
    """
    Read every player and match, recompute all aggregates and write them back.

    Each player is saved independently. A failed save does not stop the
    others; once all saves were attempted the failures are raised together
    as a WriteBackError and those players keep their old aggregates.
    """
    players = repository.list_players()
    matches = repository.list_matches()

    updates = compute_player_updates(players, matches, strategy=strategy,
                                     window_size=window_size, max_points=max_points)

    failures = {}
    for update in updates:
        aggregate = {field: update[field] for field in AGGREGATE_FIELDS}
        try:
            repository.save_player_aggregate(update['id'], aggregate)
        except Exception as e:
            # Any save failure is collected and re-raised as WriteBackError below
            logger.error(f"Failed to save stats for {update['name']}: {e}")
            failures[update['name']] = e

    if failures:
        raise WriteBackError(failures)

    logger.info(f"Recalculated stats for {len(updates)} players from {len(matches)} matches "
                f"({strategy} strategy)")
    return sorted(updates, key=lambda u: u['rank'])


def current_rank_map(players):
    """Leaderboard position of every player from their stored aggregates"""
    return {p['name']: position for position, p in enumerate(rank_players(players), start=1)}


def populate_historical_ranks(repository):
    """
    Back-fill ``player_ranks`` on matches recorded before rank snapshots existed.

    Current ranks are the best available approximation. ``repository`` is
    a ``LeagueRepository``. Returns ``(updated, errors)``.
    """
    matches = repository.list_matches()
    rank_map = current_rank_map(repository.list_players())

    missing = [m for m in matches if not m.get('player_ranks')]
    logger.info(f"Found {len(missing)} matches without rank data out of {len(matches)}")

    updated = 0
    errors = 0
    for match in missing:
        ranks = {name: rank_map[name] for name in match.get('team1', []) + match.get('team2', [])
                 if name in rank_map}
        try:
            repository.update_match_ranks(match['id'], ranks)
            updated += 1
        except RepositoryError as e:
            logger.error(f"Error updating ranks for match {match['id']}: {e}")
            errors += 1

    logger.info(f"Rank population complete: {updated} updated, {errors} errors")
    return updated, errors
