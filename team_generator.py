import random

from exceptions import InvalidMatchInput


def generate_teams(names, rng=None):
    """
    Draw two random doubles teams from the selected players.

    At least four distinct names are required; with more, four are picked
    at random and the rest sit out.
    """
    rng = rng or random.Random()
    selected = list(dict.fromkeys(n for n in names if n))
    if len(selected) < 4:
        raise InvalidMatchInput("Select at least 4 players")

    rng.shuffle(selected)
    four = selected[:4]
    return {
        'team_blue': four[:2],
        'team_red': four[2:],
        'sitting_out': selected[4:],
    }
