"""Signal Providers - adapters for external developer-signal sources."""
from core.providers.base import (
    SignalProvider,
    FetchResult,
    SOURCE_CONTROL,
    COMPETITIVE_RATING,
    PROBLEM_COUNT,
    PROVIDER_NAMES,
)
from core.providers.source_control import SourceControlProvider, extract_github_username
from core.providers.competitive_rating import CompetitiveRatingProvider
from core.providers.problem_count import ProblemCountProvider
from core.providers.registry import ProviderRegistry

__all__ = [
    'SignalProvider',
    'FetchResult',
    'SOURCE_CONTROL',
    'COMPETITIVE_RATING',
    'PROBLEM_COUNT',
    'PROVIDER_NAMES',
    'SourceControlProvider',
    'extract_github_username',
    'CompetitiveRatingProvider',
    'ProblemCountProvider',
    'ProviderRegistry',
]
