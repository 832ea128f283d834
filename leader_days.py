"""
Daily bookkeeping of how many days each player has spent at the top of
the leaderboard.

The check is meant to run whenever the app is used: the first call after
the configured hour on a new day credits one day to the current leader.
Functions here take a ``repository.LeagueRepository``.
"""
import logging
from datetime import datetime

from exceptions import RepositoryError
from scoring import rank_players

logger = logging.getLogger(__name__)

LAST_INCREMENT_KEY = 'last_leader_increment_date'
DEFAULT_CHECK_HOUR = 14


def format_date_only(moment):
    return moment.strftime("%Y-%m-%d")


def increment_leader_days(repository, now=None):
    """Credit one day to the current leader; returns the updated player or None"""
    now = now or datetime.now()
    players = repository.list_players()
    if not players:
        return None

    leader = rank_players(players)[0]
    days = (leader.get('days_as_leader') or 0) + 1
    first_date = leader.get('first_leader_date') or format_date_only(now)
    updated = repository.save_leader_days(leader['id'], days, first_date)
    logger.info(f"Leader {leader['name']} now at {days} days")
    return updated


def check_and_increment_leader_days(repository, now=None, check_hour=DEFAULT_CHECK_HOUR):
    """
    Increment the leader's days once per calendar day, after ``check_hour``.

    The very first check only records today. Storage errors are logged and
    reported as no increment. Returns True when a day was credited.
    """
    now = now or datetime.now()
    today = format_date_only(now)

    try:
        last_increment = repository.get_metadata(LAST_INCREMENT_KEY)
        if not last_increment:
            repository.set_metadata(LAST_INCREMENT_KEY, today)
            logger.info(f"First check - set increment date to {today}")
            return False

        if last_increment != today and now.hour >= check_hour:
            increment_leader_days(repository, now=now)
            repository.set_metadata(LAST_INCREMENT_KEY, today)
            logger.info(f"Incremented leader days on {today}")
            return True
    except RepositoryError as e:
        logger.error(f"Error checking leader days: {e}")
    return False


def manual_increment_leader_days(repository, now=None):
    """Force an increment regardless of the date and hour"""
    now = now or datetime.now()
    updated = increment_leader_days(repository, now=now)
    repository.set_metadata(LAST_INCREMENT_KEY, format_date_only(now))
    return updated
