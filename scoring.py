"""
Point awards and leaderboard ordering
"""
from exceptions import InvalidScoreInput

WINNING_SCORE = 21
BASE_WIN_POINTS = 10
BONUS_PER_POINT = 0.5
# Margins up to this size earn no bonus
FREE_MARGIN = 2
OVERTIME_SCORE = (21, 20)
OVERTIME_POINTS = {'winner': 7, 'loser': 3}


def award_points(winner_score, loser_score, max_points=None):
    """
    Points awarded for a single match.

    A 21-20 finish is the overtime case and always splits 7/3. Every other
    result gives the winner 10 plus half a point for each point of margin
    beyond 2, and the loser nothing.

    Inputs are not validated: a non-winning margin simply earns no bonus.
    ``max_points`` optionally caps the winner's award; it is off by default.
    """
    if (winner_score, loser_score) == OVERTIME_SCORE:
        return dict(OVERTIME_POINTS)

    diff = winner_score - loser_score
    bonus = max(0, (diff - FREE_MARGIN) * BONUS_PER_POINT)
    winner_points = BASE_WIN_POINTS + bonus
    if max_points is not None:
        winner_points = min(winner_points, max_points)
    return {'winner': winner_points, 'loser': 0}


def _whole_number(value):
    """Int, integral float or integer string as int; anything else is rejected"""
    if isinstance(value, bool):
        raise InvalidScoreInput("Scores must be whole numbers")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidScoreInput("Scores must be whole numbers")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise InvalidScoreInput("Scores must be whole numbers")
    raise InvalidScoreInput("Scores must be whole numbers")


def validate_scores(score1, score2):
    """Reject scores that cannot come from a finished match"""
    score1 = _whole_number(score1)
    score2 = _whole_number(score2)

    if score1 < 0 or score2 < 0:
        raise InvalidScoreInput("Scores cannot be negative")
    if score1 == score2:
        raise InvalidScoreInput("Scores cannot be tied")
    if max(score1, score2) < WINNING_SCORE:
        raise InvalidScoreInput(f"Winner must have at least {WINNING_SCORE} points")
    return score1, score2


def leaderboard_key(entry):
    """Sort key for the leaderboard: points first, then wins, both descending"""
    return (-float(entry.get('points') or 0), -int(entry.get('wins') or 0))


def rank_players(entries):
    """
    Order player dicts by points then wins.

    The sort is stable, so players level on both keep their input order.
    """
    return sorted(entries, key=leaderboard_key)
