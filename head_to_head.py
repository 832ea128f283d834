"""
Head-to-head and pair analytics over match dicts.

A match dict carries ``team1``/``team2`` (lists of player names),
``score1``/``score2``, ``is_double`` and ``played_at`` (datetime or ISO
string). Players are identified by name throughout.
"""
from datetime import datetime, timezone


def parse_played_at(value):
    """Normalise a timestamp to a naive UTC datetime; unknown values sort first"""
    if value is None or value == '':
        return datetime.min
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def sort_chronologically(matches):
    """Oldest first; the sort is stable for identical timestamps"""
    return sorted(matches, key=lambda m: parse_played_at(m.get('played_at')))


def match_players(match):
    return list(match.get('team1', [])) + list(match.get('team2', []))


def plays_in(name, match):
    return name in match.get('team1', []) or name in match.get('team2', [])


def team1_won(match):
    return match.get('score1', 0) > match.get('score2', 0)


def winning_team(match):
    return match.get('team1', []) if team1_won(match) else match.get('team2', [])


def losing_team(match):
    return match.get('team2', []) if team1_won(match) else match.get('team1', [])


def player_won(name, match):
    return name in winning_team(match)


def _isoformat(value):
    parsed = parse_played_at(value)
    return None if parsed == datetime.min else parsed.isoformat()


def _is_head_to_head(name_a, name_b, match, strict_sides):
    team1 = match.get('team1', [])
    team2 = match.get('team2', [])

    if not plays_in(name_a, match) or not plays_in(name_b, match):
        return False

    if not match.get('is_double') and strict_sides:
        return name_a in team1 and name_b in team2

    # Opponents only: teammates in a doubles match do not count
    return (name_a in team1 and name_b in team2) or (name_a in team2 and name_b in team1)


def head_to_head(name_a, name_b, matches, strict_sides=False):
    """
    Record between two players across singles and doubles.

    Doubles matches count only when the two players were on opposite teams.
    With ``strict_sides`` a singles match counts only when ``name_a`` was
    listed in team1 and ``name_b`` in team2; by default either slot order
    counts.
    """
    h2h_matches = [m for m in matches if _is_head_to_head(name_a, name_b, m, strict_sides)]

    wins_a = 0
    wins_b = 0
    last_match_date = None
    last_winner = None

    for match in sort_chronologically(h2h_matches):
        if player_won(name_a, match):
            wins_a += 1
            last_winner = name_a
        else:
            wins_b += 1
            last_winner = name_b
        last_match_date = _isoformat(match.get('played_at'))

    return {
        'wins_a': wins_a,
        'wins_b': wins_b,
        'total_matches': len(h2h_matches),
        'last_match_date': last_match_date,
        'last_winner': last_winner,
    }


def get_recent_form(name, matches, count=10):
    """Last ``count`` results for a player as 'W'/'L', oldest first"""
    player_matches = [m for m in sort_chronologically(matches) if plays_in(name, m)]
    recent = player_matches[-count:] if count > 0 else []
    return ['W' if player_won(name, m) else 'L' for m in recent]


def _teammates(name_a, name_b, match):
    team1 = match.get('team1', [])
    team2 = match.get('team2', [])
    return (name_a in team1 and name_b in team1) or (name_a in team2 and name_b in team2)


def pair_stats(name_a, name_b, matches):
    """
    Doubles record of two players playing together.

    ``win_rate`` is a percentage and defaults to 50 for a pair with no
    shared matches.
    """
    together = [m for m in matches if m.get('is_double') and _teammates(name_a, name_b, m)]
    wins = sum(1 for m in together if player_won(name_a, m))
    win_rate = (wins / len(together)) * 100 if together else 50

    return {
        'matches': len(together),
        'wins': wins,
        'win_rate': win_rate,
    }


def pair_head_to_head(team_a1, team_a2, team_b1, team_b2, matches):
    """
    Meetings between two fixed pairs.

    Each pair must match one side of the match exactly (order within a
    team does not matter).
    """
    pair_a = {team_a1, team_a2}
    pair_b = {team_b1, team_b2}

    meetings = []
    for match in matches:
        side1 = set(match.get('team1', []))
        side2 = set(match.get('team2', []))
        if (side1 == pair_a and side2 == pair_b) or (side1 == pair_b and side2 == pair_a):
            meetings.append(match)

    team_a_wins = 0
    team_b_wins = 0
    last_match_date = None
    for match in sort_chronologically(meetings):
        if set(winning_team(match)) == pair_a:
            team_a_wins += 1
        else:
            team_b_wins += 1
        last_match_date = _isoformat(match.get('played_at'))

    return {
        'matches': len(meetings),
        'team_a_wins': team_a_wins,
        'team_b_wins': team_b_wins,
        'last_match_date': last_match_date,
    }


def doubles_record(name, matches):
    """A player's own record restricted to doubles; win_rate is 0 with no doubles played"""
    doubles = [m for m in matches if m.get('is_double') and plays_in(name, m)]
    wins = sum(1 for m in doubles if player_won(name, m))
    return {
        'matches': len(doubles),
        'wins': wins,
        'win_rate': (wins / len(doubles)) * 100 if doubles else 0,
    }
