"""
Win-probability model for singles and doubles.

Both predictors build a score per side as a weighted blend of components
in [0, 1] whose weights sum to 1, then normalise the two scores so the
probabilities always add up to 100.
"""
from datetime import datetime

from head_to_head import doubles_record, get_recent_form, head_to_head, pair_head_to_head, pair_stats, parse_played_at

# Singles weights
HEAD_TO_HEAD_WEIGHT = 0.40
FORM_WEIGHT = 0.35
WIN_RATE_WEIGHT = 0.25

# Doubles weights: individual skill outweighs pair history
PAIR_SYNERGY_WEIGHT = 0.25
PAIR_HEAD_TO_HEAD_WEIGHT = 0.30
INDIVIDUAL_WEIGHT = 0.45

FORM_WINDOW = 10
HOT_FORM_WINS = 7
COLD_FORM_WINS = 3
MAX_SINGLES_INSIGHTS = 3
RIVALRY_MIN_MATCHES = 3
RIVALRY_SKEW = 0.7


def _normalise(score_a, score_b):
    total = score_a + score_b
    if total <= 0:
        return 50.0, 50.0
    prob_a = score_a / total * 100
    return prob_a, 100 - prob_a


def _share(wins, played):
    """Win fraction, or the neutral 0.5 when nothing was played"""
    return wins / played if played > 0 else 0.5


def _form_insight(name, form):
    wins = form.count('W')
    losses = len(form) - wins
    if wins >= HOT_FORM_WINS:
        return f"{name} is on fire: {wins}W-{losses}L in the last {len(form)}"
    if wins <= COLD_FORM_WINS and len(form) >= FORM_WINDOW:
        return f"{name} is struggling: {wins}W-{losses}L in the last {len(form)}"
    return None


def predict_singles(name_a, name_b, player_a, player_b, matches, now=None, strict_sides=False):
    """
    Predict a singles match between two players.

    ``player_a``/``player_b`` are player dicts whose stored ``wins`` and
    ``losses`` feed the overall win-rate component.
    """
    h2h = head_to_head(name_a, name_b, matches, strict_sides=strict_sides)
    form_a = get_recent_form(name_a, matches, FORM_WINDOW)
    form_b = get_recent_form(name_b, matches, FORM_WINDOW)

    score_a = 0.0
    score_b = 0.0

    # Head-to-head
    if h2h['total_matches'] > 0:
        score_a += h2h['wins_a'] / h2h['total_matches'] * HEAD_TO_HEAD_WEIGHT
        score_b += h2h['wins_b'] / h2h['total_matches'] * HEAD_TO_HEAD_WEIGHT
    else:
        score_a += HEAD_TO_HEAD_WEIGHT / 2
        score_b += HEAD_TO_HEAD_WEIGHT / 2

    # Recent form
    score_a += _share(form_a.count('W'), len(form_a)) * FORM_WEIGHT
    score_b += _share(form_b.count('W'), len(form_b)) * FORM_WEIGHT

    # Overall win rate
    wins_a, losses_a = player_a.get('wins') or 0, player_a.get('losses') or 0
    wins_b, losses_b = player_b.get('wins') or 0, player_b.get('losses') or 0
    score_a += _share(wins_a, wins_a + losses_a) * WIN_RATE_WEIGHT
    score_b += _share(wins_b, wins_b + losses_b) * WIN_RATE_WEIGHT

    prob_a, prob_b = _normalise(score_a, score_b)

    insights = []
    if h2h['total_matches'] > 0:
        if h2h['wins_a'] > h2h['wins_b']:
            insights.append(f"{name_a} has won {h2h['wins_a']} of the last "
                            f"{h2h['total_matches']} head-to-head matches")
        elif h2h['wins_b'] > h2h['wins_a']:
            insights.append(f"{name_b} has won {h2h['wins_b']} of the last "
                            f"{h2h['total_matches']} head-to-head matches")
        else:
            insights.append(f"Dead even head-to-head: {h2h['wins_a']}-{h2h['wins_b']}")

    for name, form in ((name_a, form_a), (name_b, form_b)):
        insight = _form_insight(name, form)
        if insight:
            insights.append(insight)

    if h2h['last_match_date'] and h2h['last_winner']:
        now = now or datetime.utcnow()
        days_since = (parse_played_at(now) - parse_played_at(h2h['last_match_date'])).days
        insights.append(f"Last win for {h2h['last_winner']}: {days_since} days ago")

    return {
        'prob_a': prob_a,
        'prob_b': prob_b,
        'head_to_head': h2h,
        'insights': insights[:MAX_SINGLES_INSIGHTS],
    }


def _individual_doubles_share(name, matches, known_names):
    """A player's doubles win fraction; 0.5 without doubles history or for unknown names"""
    if known_names is not None and name not in known_names:
        return 0.5
    record = doubles_record(name, matches)
    return _share(record['wins'], record['matches'])


def predict_doubles(a1, a2, b1, b2, all_players, matches, strict_sides=False):
    """
    Predict a doubles match between the pairs (a1, a2) and (b1, b2).

    ``all_players`` lists the registered player dicts; names outside it get
    the neutral individual share. Pass None to skip the check.
    """
    known_names = None if all_players is None else {p['name'] for p in all_players}

    pair_a = pair_stats(a1, a2, matches)
    pair_b = pair_stats(b1, b2, matches)
    meetings = pair_head_to_head(a1, a2, b1, b2, matches)

    score_a = pair_a['win_rate'] / 100 * PAIR_SYNERGY_WEIGHT
    score_b = pair_b['win_rate'] / 100 * PAIR_SYNERGY_WEIGHT

    if meetings['matches'] > 0:
        score_a += meetings['team_a_wins'] / meetings['matches'] * PAIR_HEAD_TO_HEAD_WEIGHT
        score_b += meetings['team_b_wins'] / meetings['matches'] * PAIR_HEAD_TO_HEAD_WEIGHT
    else:
        score_a += 0.5 * PAIR_HEAD_TO_HEAD_WEIGHT
        score_b += 0.5 * PAIR_HEAD_TO_HEAD_WEIGHT

    individual_a = (_individual_doubles_share(a1, matches, known_names)
                    + _individual_doubles_share(a2, matches, known_names)) / 2
    individual_b = (_individual_doubles_share(b1, matches, known_names)
                    + _individual_doubles_share(b2, matches, known_names)) / 2
    score_a += individual_a * INDIVIDUAL_WEIGHT
    score_b += individual_b * INDIVIDUAL_WEIGHT

    prob_a, prob_b = _normalise(score_a, score_b)

    insights = []
    for (p1, p2), stats in (((a1, a2), pair_a), ((b1, b2), pair_b)):
        if stats['matches'] > 0:
            insights.append(f"{p1} + {p2} together: {stats['wins']}W-"
                            f"{stats['matches'] - stats['wins']}L ({stats['win_rate']:.0f}%)")
        else:
            insights.append(f"First time together for {p1} + {p2}")

    if meetings['matches'] > 0:
        times = 'once' if meetings['matches'] == 1 else f"{meetings['matches']} times"
        insights.append(f"These pairs have met {times}: "
                        f"{meetings['team_a_wins']}-{meetings['team_b_wins']}")

    # Anchors are the first listed player of each team
    rivalry = head_to_head(a1, b1, matches, strict_sides=strict_sides)
    if rivalry['total_matches'] >= RIVALRY_MIN_MATCHES:
        leader_wins = max(rivalry['wins_a'], rivalry['wins_b'])
        if leader_wins / rivalry['total_matches'] >= RIVALRY_SKEW:
            leader, trailer = (a1, b1) if rivalry['wins_a'] >= rivalry['wins_b'] else (b1, a1)
            insights.append(f"Rivalry to watch: {leader} leads {trailer} "
                            f"{leader_wins}-{rivalry['total_matches'] - leader_wins}")

    return {
        'prob_team1': prob_a,
        'prob_team2': prob_b,
        'pair_stats_team1': pair_a,
        'pair_stats_team2': pair_b,
        'head_to_head_matches': meetings['matches'],
        'pair_head_to_head': meetings,
        'insights': insights,
    }
