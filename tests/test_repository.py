import pytest

from exceptions import NotFoundError, PlayerNotFoundError
from repository import LeagueRepository, Repository, SQLAlchemyRepository


class EngineOnlyRepository(LeagueRepository):
    def list_players(self):
        return []

    def list_matches(self):
        return []

    def save_player_aggregate(self, player_id, aggregate):
        return aggregate


def test_league_repository_requires_job_methods():
    with pytest.raises(TypeError):
        EngineOnlyRepository()


def test_sqlalchemy_repository_implements_full_interface(repository):
    assert isinstance(repository, LeagueRepository)
    assert isinstance(repository, Repository)
    assert issubclass(SQLAlchemyRepository, LeagueRepository)


def test_metadata_round_trip(repository):
    assert repository.get_metadata('last_leader_increment_date') is None

    repository.set_metadata('last_leader_increment_date', '2024-05-01')
    repository.set_metadata('last_leader_increment_date', '2024-05-02')

    assert repository.get_metadata('last_leader_increment_date') == '2024-05-02'


def test_missing_records_raise_not_found(repository):
    with pytest.raises(PlayerNotFoundError):
        repository.save_player_aggregate(42, {'wins': 0, 'losses': 0, 'points': 0, 'history': [],
                                              'best_rank': None})
    with pytest.raises(NotFoundError):
        repository.update_match_ranks(42, {'Alice': 1})
    with pytest.raises(NotFoundError):
        repository.delete_report(42)
