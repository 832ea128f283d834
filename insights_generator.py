"""
Narrative blurbs about the matches played on a given day.

Output is flavour text only; nothing here feeds rankings.
"""
import random
from collections import defaultdict
from datetime import date, datetime

from head_to_head import losing_team, parse_played_at, plays_in, sort_chronologically, team1_won, winning_team
from player_stats import current_streak

MAX_INSIGHTS = 5
WIN_STREAK_MIN = 4
LOSS_STREAK_MIN = 3
HOT_FORM_WINS = 8
CLOSE_MARGIN = 2
CLOSE_MIN_WINNER_SCORE = 20
BLOWOUT_MARGIN = 10
PAIR_DECISIONS_MIN = 3
CLOSE_DAY_SHARE = 0.6
CLOSE_DAY_MIN_MATCHES = 3
DAY_LEADER_MIN_WINS = 4
REVENGE_LOOKBACK = 5
REVENGE_MIN_LOSSES = 3


def _insight(kind, emoji, text, players=None):
    return {'type': kind, 'emoji': emoji, 'text': text, 'players': list(players or [])}


def _scores(match):
    if team1_won(match):
        return match.get('score1', 0), match.get('score2', 0)
    return match.get('score2', 0), match.get('score1', 0)


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_played_at(value).date()


def matches_on(matches, target_date):
    target = _as_date(target_date)
    return [m for m in matches if parse_played_at(m.get('played_at')).date() == target]


def analyze_streaks(players, day_matches):
    insights = []
    for player in players:
        history = player.get('history') or []
        name = player['name']
        if not history or not any(plays_in(name, m) for m in day_matches):
            continue

        streak = current_streak(history)
        if streak['type'] == 'W' and streak['count'] >= WIN_STREAK_MIN:
            insights.append(_insight('streak', '🔥',
                                     f"Golden run for {name}: {streak['count']} wins in a row! Unstoppable!",
                                     [name]))
        elif streak['type'] == 'L' and streak['count'] >= LOSS_STREAK_MIN:
            insights.append(_insight('streak', '❄️',
                                     f"Tough spell for {name}: {streak['count']} losses in a row. Time for a turnaround!",
                                     [name]))
        elif history[-10:].count('W') >= HOT_FORM_WINS:
            insights.append(_insight('streak', '👑',
                                     f"{name} is in a state of grace: {history[-10:].count('W')} wins in the last 10!",
                                     [name]))
    return insights


def analyze_battles(day_matches, rng):
    insights = []
    for match in day_matches:
        winner_score, loser_score = _scores(match)
        if winner_score - loser_score > CLOSE_MARGIN or winner_score < CLOSE_MIN_WINNER_SCORE:
            continue
        winners = ' + '.join(winning_team(match))
        losers = ' + '.join(losing_team(match))
        phrases = [
            f"Epic battle: {winners} beat {losers} {winner_score}-{loser_score}! What a match!",
            f"Nerves of steel! {winners} edge out {losers} ({winner_score}-{loser_score})",
            f"Thriller: {winners} get past {losers} {winner_score}-{loser_score}. Heart-stopping!",
        ]
        insights.append(_insight('battle', '⚔️', rng.choice(phrases),
                                 list(winning_team(match)) + list(losing_team(match))))
    return insights


def analyze_blowouts(day_matches, rng):
    insights = []
    for match in day_matches:
        winner_score, loser_score = _scores(match)
        if winner_score - loser_score < BLOWOUT_MARGIN:
            continue
        winners = ' + '.join(winning_team(match))
        losers = ' + '.join(losing_team(match))
        phrases = [
            f"Demolition! {winners} crush {losers} {winner_score}-{loser_score}. No mercy!",
            f"Total domination: {winners} steamroll {losers} {winner_score}-{loser_score}!",
            f"{losers} taught a lesson by {winners}: {winner_score}-{loser_score}.",
        ]
        insights.append(_insight('record', '💀', rng.choice(phrases),
                                 list(winning_team(match)) + list(losing_team(match))))
    return insights


def analyze_doubles(day_matches):
    pairs = {}
    for match in day_matches:
        if not match.get('is_double'):
            continue
        for team, won in ((winning_team(match), True), (losing_team(match), False)):
            key = tuple(sorted(team))
            stats = pairs.setdefault(key, {'wins': 0, 'losses': 0, 'players': list(team)})
            stats['wins' if won else 'losses'] += 1

    insights = []
    for stats in pairs.values():
        pair_name = ' + '.join(stats['players'])
        if stats['wins'] >= PAIR_DECISIONS_MIN and stats['losses'] == 0:
            insights.append(_insight('doubles', '🤝',
                                     f"Dream team today: {pair_name} unbeaten with {stats['wins']} wins out of {stats['wins']}!",
                                     stats['players']))
        elif stats['losses'] >= PAIR_DECISIONS_MIN and stats['wins'] == 0:
            insights.append(_insight('doubles', '💔',
                                     f"Cursed pair: {pair_name} 0 wins in {stats['losses']} matches. Time to split up?",
                                     stats['players']))
    return insights


def analyze_fun_facts(day_matches):
    insights = []

    close = [m for m in day_matches if abs(m.get('score1', 0) - m.get('score2', 0)) <= CLOSE_MARGIN]
    if len(day_matches) >= CLOSE_DAY_MIN_MATCHES and len(close) >= len(day_matches) * CLOSE_DAY_SHARE:
        share = round(len(close) / len(day_matches) * 100)
        insights.append(_insight('fun', '🎯',
                                 f"A day of balance: {share}% of matches were decided by 2 points or less!"))

    win_counts = defaultdict(int)
    for match in day_matches:
        for name in winning_team(match):
            win_counts[name] += 1

    if win_counts:
        top_name, top_wins = max(win_counts.items(), key=lambda item: item[1])
        if top_wins >= DAY_LEADER_MIN_WINS:
            insights.append(_insight('fun', '🏆',
                                     f"{top_name} rules the day with {top_wins} wins! Player of the day!",
                                     [top_name]))
    return insights


def analyze_revenge(day_matches, all_matches):
    insights = []
    for match in day_matches:
        if match.get('is_double'):
            continue
        winner = winning_team(match)[0]
        loser = losing_team(match)[0]
        match_day = parse_played_at(match.get('played_at')).date()

        previous = [m for m in all_matches
                    if not m.get('is_double')
                    and parse_played_at(m.get('played_at')).date() < match_day
                    and plays_in(winner, m) and plays_in(loser, m)]
        last_meetings = sort_chronologically(previous)[-REVENGE_LOOKBACK:]
        if len(last_meetings) < REVENGE_MIN_LOSSES:
            continue

        losses = sum(1 for m in last_meetings if loser in winning_team(m))
        if losses >= REVENGE_MIN_LOSSES:
            insights.append(_insight('record', '🎯',
                                     f"Revenge served cold! {winner} finally beats {loser} after "
                                     f"{losses} defeats in their last {len(last_meetings)} meetings!",
                                     [winner, loser]))
    return insights


def generate_daily_insights(matches, players, target_date, rng=None):
    """
    Up to five insights about ``target_date``, in priority order: streaks,
    close battles, blowouts, doubles pairs, fun facts, revenge.
    """
    rng = rng or random.Random()
    day_matches = matches_on(matches, target_date)

    if not day_matches:
        return [_insight('fun', '🦗', "Total silence today... No matches played! Is someone scared?")]

    insights = []
    insights.extend(analyze_streaks(players, day_matches))
    insights.extend(analyze_battles(day_matches, rng))
    insights.extend(analyze_blowouts(day_matches, rng))
    insights.extend(analyze_doubles(day_matches))
    insights.extend(analyze_fun_facts(day_matches))
    insights.extend(analyze_revenge(day_matches, matches))
    return insights[:MAX_INSIGHTS]
