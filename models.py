from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()


class Player(db.Model):
    __tablename__ = 'players'

    id = db.Column(db.Integer, primary_key=True)
    # Matches reference players by name, so names are unique and treated as immutable
    name = db.Column(db.String(100), unique=True, nullable=False)

    # Profile
    avatar = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    skill = db.Column(db.String(200), nullable=True)
    lack = db.Column(db.String(200), nullable=True)
    hand = db.Column(db.String(20), default='N.D.')
    shot = db.Column(db.String(50), default='N.D.')
    fame_entries = db.Column(db.JSON, default=list)

    # Derived aggregates, overwritten by every recalculation pass
    wins = db.Column(db.Integer, default=0, nullable=False)
    losses = db.Column(db.Integer, default=0, nullable=False)
    points = db.Column(db.Float, default=0.0, nullable=False)
    history = db.Column(db.JSON, default=list)
    best_rank = db.Column(db.Integer, nullable=True)
    days_as_leader = db.Column(db.Integer, default=0, nullable=False)
    first_leader_date = db.Column(db.String(10), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Player {self.name}>'

    def to_dict(self):
        """Convert player to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'name': self.name,
            'avatar': self.avatar,
            'description': self.description,
            'skill': self.skill,
            'lack': self.lack,
            'hand': self.hand,
            'shot': self.shot,
            'fame_entries': list(self.fame_entries or []),
            'wins': self.wins or 0,
            'losses': self.losses or 0,
            'points': self.points or 0.0,
            'history': list(self.history or []),
            'best_rank': self.best_rank,
            'days_as_leader': self.days_as_leader or 0,
            'first_leader_date': self.first_leader_date,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class Match(db.Model):
    __tablename__ = 'matches'

    id = db.Column(db.Integer, primary_key=True)
    team1 = db.Column(db.JSON, nullable=False)
    team2 = db.Column(db.JSON, nullable=False)
    score1 = db.Column(db.Integer, nullable=False)
    score2 = db.Column(db.Integer, nullable=False)
    is_double = db.Column(db.Boolean, default=False, nullable=False)
    played_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    # Leaderboard position of each participant when the match was recorded
    player_ranks = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def winner(self):
        """1 or 2 for the winning side, None for a tie"""
        if self.score1 > self.score2:
            return 1
        if self.score2 > self.score1:
            return 2
        return None

    def __repr__(self):
        return f"<Match {' & '.join(self.team1)} vs {' & '.join(self.team2)} {self.score1}-{self.score2}>"

    def to_dict(self):
        """Convert match to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'match_type': 'doubles' if self.is_double else 'singles',
            'team1': list(self.team1),
            'team2': list(self.team2),
            'score1': self.score1,
            'score2': self.score2,
            'is_double': bool(self.is_double),
            'winner': self.winner,
            'played_at': self.played_at.isoformat() if self.played_at else None,
            'player_ranks': dict(self.player_ranks) if self.player_ranks else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Report(db.Model):
    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)
    author = db.Column(db.String(100), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'author': self.author,
            'content': self.content,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class AppMetadata(db.Model):
    """Key/value store for application bookkeeping (e.g. last leader-days increment)"""
    __tablename__ = 'app_metadata'

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.String(255), nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
