from .base import Base
from .user import User
from .application import Application
from .scoring_weight import ScoringWeight

__all__ = [
    'Base',
    'User',
    'Application',
    'ScoringWeight',
]
