import os


def _optional_float(value):
    if value is None or value == '':
        return None
    return float(value)


def _flag(value, default=False):
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('FLASK_SECRET_KEY', "ping-pong-league-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///ping_pong.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Stat recalculation: 'full' replays every match, 'rolling' keeps each
    # player's last ROLLING_WINDOW_SIZE matches
    STATS_STRATEGY = os.environ.get('STATS_STRATEGY', 'full')
    ROLLING_WINDOW_SIZE = int(os.environ.get('ROLLING_WINDOW_SIZE', 20))
    POINTS_CAP = _optional_float(os.environ.get('POINTS_CAP'))
    HEAD_TO_HEAD_STRICT_SIDES = _flag(os.environ.get('HEAD_TO_HEAD_STRICT_SIDES'))

    LEADER_CHECK_HOUR = int(os.environ.get('LEADER_CHECK_HOUR', 14))

    RATELIMIT_ENABLED = _flag(os.environ.get('RATELIMIT_ENABLED'), default=True)
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', "200 per day;50 per hour")
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', "memory://")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RATELIMIT_ENABLED = False
    STATS_STRATEGY = 'full'
    POINTS_CAP = None
    HEAD_TO_HEAD_STRICT_SIDES = False
