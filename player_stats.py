"""
Advanced statistics for a single player: rivals, streaks, form by period,
match-type split and favourite doubles partners.
"""
from collections import defaultdict
from datetime import datetime, timedelta

from head_to_head import head_to_head, parse_played_at, player_won, plays_in

FORM_PERIODS = (7, 14, 30)
# Flat per-win figure used for period form, not the real point award
POINTS_PER_WIN = 10
RIVALRY_MIN_MATCHES = 5
RIVALRY_MAX_GAP = 2
MAX_BALANCED_RIVALRIES = 3


def get_player_matchups(name, matches, opponent_names, strict_sides=False):
    """Head-to-head record against every opponent met at least once"""
    matchups = []
    for opponent in opponent_names:
        if opponent == name:
            continue
        h2h = head_to_head(name, opponent, matches, strict_sides=strict_sides)
        if h2h['total_matches'] > 0:
            matchups.append({
                'opponent_name': opponent,
                'wins': h2h['wins_a'],
                'losses': h2h['wins_b'],
                'total_matches': h2h['total_matches'],
            })
    return matchups


def find_nemesis(matchups):
    """Opponent with the most losses against; ties keep the first in opponent order"""
    candidates = sorted((m for m in matchups if m['losses'] > 0), key=lambda m: -m['losses'])
    return candidates[0] if candidates else None


def find_victim(matchups):
    """Opponent with the most wins against; ties keep the first in opponent order"""
    candidates = sorted((m for m in matchups if m['wins'] > 0), key=lambda m: -m['wins'])
    return candidates[0] if candidates else None


def current_streak(history):
    """Trailing run of identical results, e.g. {'type': 'L', 'count': 2}"""
    streak = {'type': 'W', 'count': 0}
    if not history:
        return streak

    streak['type'] = history[-1]
    for result in reversed(history):
        if result != streak['type']:
            break
        streak['count'] += 1
    return streak


def best_streak(history):
    """Longest run of consecutive wins"""
    best = 0
    run = 0
    for result in history:
        if result == 'W':
            run += 1
            best = max(best, run)
        else:
            run = 0
    return {'type': 'W', 'count': best}


def recent_form_by_period(name, matches, now=None, periods=FORM_PERIODS):
    now = parse_played_at(now or datetime.utcnow())
    form = []
    for days in periods:
        period_start = now - timedelta(days=days)
        wins = 0
        losses = 0
        for match in matches:
            if not plays_in(name, match) or parse_played_at(match.get('played_at')) < period_start:
                continue
            if player_won(name, match):
                wins += 1
            else:
                losses += 1
        form.append({
            'period': f"{days} days",
            'days': days,
            'wins': wins,
            'losses': losses,
            'points_change': wins * POINTS_PER_WIN,
        })
    return form


def match_type_split(name, matches):
    split = {}
    for label, is_double in (('singles', False), ('doubles', True)):
        played = [m for m in matches if bool(m.get('is_double')) == is_double and plays_in(name, m)]
        wins = sum(1 for m in played if player_won(name, m))
        split[label] = {
            'matches': len(played),
            'wins': wins,
            'win_rate': (wins / len(played)) * 100 if played else 0,
        }
    return split


def balanced_rivalries(matchups):
    """Opponents met at least 5 times with records within 2 wins, most played first"""
    balanced = [m for m in matchups
                if m['total_matches'] >= RIVALRY_MIN_MATCHES and abs(m['wins'] - m['losses']) <= RIVALRY_MAX_GAP]
    balanced.sort(key=lambda m: -m['total_matches'])
    return balanced[:MAX_BALANCED_RIVALRIES]


def favorite_teammates(name, matches):
    """Doubles partners played with most often; every partner tied for the top is returned"""
    partners = defaultdict(lambda: {'matches_played': 0, 'wins': 0})

    for match in matches:
        if not match.get('is_double'):
            continue
        for team in (match.get('team1', []), match.get('team2', [])):
            if name not in team:
                continue
            won = player_won(name, match)
            for teammate in team:
                if teammate == name:
                    continue
                partners[teammate]['matches_played'] += 1
                if won:
                    partners[teammate]['wins'] += 1

    if not partners:
        return []

    most = max(p['matches_played'] for p in partners.values())
    favorites = []
    for teammate, stats in partners.items():
        if stats['matches_played'] == most:
            favorites.append({
                'teammate': teammate,
                'matches_played': stats['matches_played'],
                'wins': stats['wins'],
                'win_rate': round((stats['wins'] / stats['matches_played']) * 100, 1),
            })
    return favorites


def calculate_advanced_stats(player, matches, all_players, now=None, strict_sides=False):
    """
    Full advanced statistics for ``player``.

    Streaks are read from the player's stored ``history``; everything else
    is derived from ``matches``.
    """
    name = player['name']
    history = player.get('history') or []
    matchups = get_player_matchups(name, matches, [p['name'] for p in all_players],
                                   strict_sides=strict_sides)
    split = match_type_split(name, matches)

    return {
        'nemesis': find_nemesis(matchups),
        'victim': find_victim(matchups),
        'recent_form': recent_form_by_period(name, matches, now=now),
        'best_streak': best_streak(history),
        'current_streak': current_streak(history),
        'singles_win_rate': split['singles']['win_rate'],
        'doubles_win_rate': split['doubles']['win_rate'],
        'singles_matches': split['singles']['matches'],
        'doubles_matches': split['doubles']['matches'],
        'balanced_rivalries': balanced_rivalries(matchups),
        'favorite_teammates': favorite_teammates(name, matches),
    }
