class PingPongError(Exception):
    """Base class for league tracker errors"""


class InvalidScoreInput(PingPongError, ValueError):
    """Scores that cannot describe a finished match"""


class InvalidMatchInput(PingPongError, ValueError):
    """Team layout that cannot describe a singles or doubles match"""


class RepositoryError(PingPongError):
    """A read or write against the data store failed"""


class NotFoundError(RepositoryError):
    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class PlayerNotFoundError(NotFoundError):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__('Player', player_id)


class WriteBackError(PingPongError):
    """One or more player aggregates could not be saved.

    Every save is still attempted; ``failures`` maps player name to the
    error raised for that player.
    """
    def __init__(self, failures):
        self.failures = failures
        names = ", ".join(sorted(failures))
        super().__init__(f"Failed to save stats for {len(failures)} player(s): {names}")
