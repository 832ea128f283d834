"""
Data access for the statistics engine.

The engine only needs ``list_players``, ``list_matches`` and
``save_player_aggregate`` (``Repository``). The leader-days and
rank-snapshot jobs take a ``LeagueRepository``; the remaining methods of
``SQLAlchemyRepository`` back the web layer.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from exceptions import NotFoundError, PlayerNotFoundError, RepositoryError
from models import AppMetadata, Match, Player, Report

logger = logging.getLogger(__name__)

PLAYER_PROFILE_FIELDS = ('name', 'avatar', 'description', 'skill', 'lack', 'hand', 'shot', 'fame_entries')
MATCH_FIELDS = ('team1', 'team2', 'score1', 'score2', 'is_double', 'played_at', 'player_ranks')


class Repository(ABC):
    @abstractmethod
    def list_players(self):
        """All players as dicts"""

    @abstractmethod
    def list_matches(self):
        """All matches as dicts"""

    @abstractmethod
    def save_player_aggregate(self, player_id, aggregate):
        """Overwrite wins/losses/points/history/best_rank; raise PlayerNotFoundError if gone"""


class LeagueRepository(Repository):
    """Engine interface plus what the leader-days and rank-snapshot jobs need"""

    @abstractmethod
    def save_leader_days(self, player_id, days_as_leader, first_leader_date):
        """Store leader-day counters for a player and return the player dict"""

    @abstractmethod
    def update_match_ranks(self, match_id, player_ranks):
        """Replace a match's ``player_ranks`` snapshot"""

    @abstractmethod
    def get_metadata(self, key):
        """Stored value for ``key`` or None"""

    @abstractmethod
    def set_metadata(self, key, value):
        """Create or overwrite ``key``"""


class SQLAlchemyRepository(LeagueRepository):
    """Repository over a Flask-SQLAlchemy session; every write commits on its own"""

    def __init__(self, session):
        self.session = session

    def _commit(self, action):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error while trying to {action}: {e}")
            raise RepositoryError(f"Could not {action}: {e}") from e

    def _get_player(self, player_id):
        player = self.session.get(Player, player_id)
        if player is None:
            raise PlayerNotFoundError(player_id)
        return player

    def get_player(self, player_id):
        return self._get_player(player_id).to_dict()

    def _get_match(self, match_id):
        match = self.session.get(Match, match_id)
        if match is None:
            raise NotFoundError("Match", match_id)
        return match

    # Players
    def list_players(self):
        players = self.session.query(Player).order_by(Player.name.asc()).all()
        return [p.to_dict() for p in players]

    def get_player_by_name(self, name):
        player = self.session.query(Player).filter_by(name=name).first()
        return player.to_dict() if player else None

    def create_player(self, data):
        player = Player(**{k: v for k, v in data.items() if k in PLAYER_PROFILE_FIELDS})
        self.session.add(player)
        self._commit(f"create player {data.get('name')}")
        return player.to_dict()

    def update_player(self, player_id, updates):
        player = self._get_player(player_id)
        for field, value in updates.items():
            if field in PLAYER_PROFILE_FIELDS:
                setattr(player, field, value)
        self._commit(f"update player {player_id}")
        return player.to_dict()

    def delete_player(self, player_id):
        self.session.delete(self._get_player(player_id))
        self._commit(f"delete player {player_id}")

    def save_player_aggregate(self, player_id, aggregate):
        player = self._get_player(player_id)
        player.wins = aggregate['wins']
        player.losses = aggregate['losses']
        player.points = aggregate['points']
        player.history = list(aggregate['history'])
        player.best_rank = aggregate['best_rank']
        player.updated_at = datetime.utcnow()
        self._commit(f"save stats for {player.name}")
        return player.to_dict()

    def save_leader_days(self, player_id, days_as_leader, first_leader_date):
        player = self._get_player(player_id)
        player.days_as_leader = days_as_leader
        player.first_leader_date = first_leader_date
        self._commit(f"save leader days for {player.name}")
        return player.to_dict()

    # Matches
    def list_matches(self):
        matches = self.session.query(Match).order_by(Match.played_at.asc(), Match.id.asc()).all()
        return [m.to_dict() for m in matches]

    def get_match(self, match_id):
        return self._get_match(match_id).to_dict()

    def create_match(self, data):
        match = Match(**{k: v for k, v in data.items() if k in MATCH_FIELDS and v is not None})
        self.session.add(match)
        self._commit("create match")
        return match.to_dict()

    def update_match(self, match_id, updates):
        match = self._get_match(match_id)
        for field, value in updates.items():
            if field in MATCH_FIELDS:
                setattr(match, field, value)
        self._commit(f"update match {match_id}")
        return match.to_dict()

    def update_match_ranks(self, match_id, player_ranks):
        return self.update_match(match_id, {'player_ranks': dict(player_ranks)})

    def delete_match(self, match_id):
        self.session.delete(self._get_match(match_id))
        self._commit(f"delete match {match_id}")

    # Reports
    def list_reports(self):
        reports = self.session.query(Report).order_by(Report.created_at.desc()).all()
        return [r.to_dict() for r in reports]

    def create_report(self, author, content):
        report = Report(author=author, content=content)
        self.session.add(report)
        self._commit("create report")
        return report.to_dict()

    def delete_report(self, report_id):
        report = self.session.get(Report, report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        self.session.delete(report)
        self._commit(f"delete report {report_id}")

    # App metadata
    def get_metadata(self, key):
        entry = self.session.get(AppMetadata, key)
        return entry.value if entry else None

    def set_metadata(self, key, value):
        entry = self.session.get(AppMetadata, key)
        if entry is None:
            entry = AppMetadata(key=key)
            self.session.add(entry)
        entry.value = value
        self._commit(f"set metadata {key}")
