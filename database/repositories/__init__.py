from database.repositories.base import BaseRepository
from database.repositories.application import ApplicationRepository
from database.repositories.user import UserRepository
from database.repositories.scoring_weight import ScoringWeightRepository, DEFAULT_WEIGHTS

__all__ = [
    'BaseRepository',
    'ApplicationRepository',
    'UserRepository',
    'ScoringWeightRepository',
    'DEFAULT_WEIGHTS',
]
