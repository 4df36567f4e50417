"""
End-to-end verification pipeline tests.

Real repositories on SQLite, real provider adapters with mocked HTTP
sessions, and a real WeightCacheService in front of a mocked Redis.
"""
import pytest
from unittest.mock import Mock, patch
from sqlalchemy.exc import OperationalError

from admission.verification import VerificationPipeline
from core.cache.weight_cache import WeightCacheService
from core.config_loader import ScoringConfig
from core.credentials import CredentialCipher
from core.exceptions import ConfigError, NotFoundError, TransactionError
from core.providers import (
    CompetitiveRatingProvider,
    ProblemCountProvider,
    ProviderRegistry,
    SourceControlProvider,
)
from core.scorer import Decision
from database.repositories import ApplicationRepository
from database.uow import admission_uow
from tests import add_application, add_user, seed_weights

CIPHER = CredentialCipher("test-encryption-key-32bytes!!!!!")


def _response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload if payload is not None else {}
    return response


def _contributions(total):
    return {"data": {"user": {"contributionsCollection": {"contributionCalendar": {"totalContributions": total}}}}}


def _rating(max_rating):
    return {"status": "OK", "result": [{"handle": "tourist", "maxRating": max_rating}]}


@pytest.fixture
def registry():
    providers = [
        SourceControlProvider("https://api.github.com", max_retries=0),
        CompetitiveRatingProvider("https://codeforces.com/api", max_retries=0),
        ProblemCountProvider("https://leetcode.com/graphql", max_retries=0),
    ]
    for provider in providers:
        provider.session = Mock()
        provider.session.request.return_value = _response(500)
    return ProviderRegistry(providers)


@pytest.fixture
def pipeline(session_factory, registry, mock_redis):
    seed_weights(session_factory)

    def load_rows():
        with admission_uow(session_factory) as repo:
            return repo.weights.list_rows()

    weight_cache = WeightCacheService(mock_redis, weight_loader=load_rows)
    return VerificationPipeline(session_factory, registry, weight_cache, ScoringConfig(), cipher=CIPHER)


def _load(session_factory, application_id):
    with admission_uow(session_factory) as repo:
        application = repo.applications.get_by_id(application_id)
        user = repo.users.get_by_id(application.user_id)
        return {
            'status': application.status,
            'score': application.score,
            'breakdown': application.score_breakdown,
            'passing_threshold': application.passing_threshold,
            'user_status': user.status,
        }


@pytest.mark.db
class TestVerificationPipeline:

    def test_01_source_control_at_threshold_is_approved(self, pipeline, session_factory, registry):
        user_id = add_user(session_factory, github_username="octocat",
                           source_control_token_enc=CIPHER.encrypt("gho_token"))
        application_id = add_application(session_factory, user_id, github_url="https://github.com/octocat")
        github = registry.get_provider("source-control")
        github.session.request.return_value = _response(200, _contributions(1000))

        outcome = pipeline.run(application_id)

        assert outcome.decision == Decision.APPROVED
        assert outcome.result.score == 100.0
        assert outcome.failed_providers == []
        # Linked token means the precise GraphQL path
        assert github.session.request.call_args[0] == ("POST", "https://api.github.com/graphql")

        stored = _load(session_factory, application_id)
        assert stored['status'] == "APPROVED"
        assert stored['score'] == 100.0
        assert stored['passing_threshold'] == 70.0
        assert stored['breakdown']['github_contributions']['normalized_value'] == 100.0
        assert stored['user_status'] == "APPROVED"

    def test_02_rating_at_minimum_is_rejected(self, pipeline, session_factory, registry):
        user_id = add_user(session_factory)
        application_id = add_application(session_factory, user_id, codeforces_handle="tourist")
        registry.get_provider("competitive-rating").session.request.return_value = _response(200, _rating(1200))

        outcome = pipeline.run(application_id)

        assert outcome.decision == Decision.REJECTED
        assert outcome.result.score == 0.0
        stored = _load(session_factory, application_id)
        assert stored['status'] == "REJECTED"
        assert stored['user_status'] == "REJECTED"

    def test_03_mixed_signals_need_review(self, pipeline, session_factory, registry):
        user_id = add_user(session_factory)
        application_id = add_application(
            session_factory, user_id,
            github_url="octocat",
            codeforces_handle="tourist",
        )
        registry.get_provider("source-control").session.request.return_value = _response(200, {"public_repos": 20})
        registry.get_provider("competitive-rating").session.request.return_value = _response(200, _rating(1200))

        outcome = pipeline.run(application_id)

        assert outcome.result.score == pytest.approx(58.33)
        assert outcome.decision == Decision.UNDER_REVIEW
        stored = _load(session_factory, application_id)
        assert stored['status'] == "UNDER_REVIEW"
        # Human review pending: user status untouched
        assert stored['user_status'] == "PENDING"
        assert set(stored['breakdown']) == {"github_contributions", "codeforces_rating"}

    def test_04_failed_provider_is_skipped(self, pipeline, session_factory, registry):
        user_id = add_user(session_factory)
        application_id = add_application(
            session_factory, user_id,
            github_url="https://github.com/ghost",
            codeforces_handle="tourist",
        )
        registry.get_provider("source-control").session.request.return_value = _response(404)
        registry.get_provider("competitive-rating").session.request.return_value = _response(200, _rating(2100))

        outcome = pipeline.run(application_id)

        assert outcome.failed_providers == ["source-control"]
        assert outcome.result.score == 100.0
        assert outcome.decision == Decision.APPROVED
        assert "github_contributions" not in _load(session_factory, application_id)['breakdown']

    def test_05_all_providers_failing_scores_zero(self, pipeline, session_factory):
        user_id = add_user(session_factory)
        application_id = add_application(
            session_factory, user_id,
            github_url="octocat",
            codeforces_handle="tourist",
            leetcode_handle="neal_wu",
        )

        outcome = pipeline.run(application_id)

        assert sorted(outcome.failed_providers) == ["competitive-rating", "problem-count", "source-control"]
        assert outcome.result.score == 0.0
        assert outcome.decision == Decision.REJECTED

    def test_06_only_proofs_present_are_fetched(self, pipeline, session_factory, registry):
        user_id = add_user(session_factory, codeforces_handle="tourist")
        application_id = add_application(session_factory, user_id, portfolio_url="https://example.dev")

        outcome = pipeline.run(application_id)

        for provider in registry:
            provider.session.request.assert_not_called()
        assert outcome.result.breakdown == {}
        assert outcome.decision == Decision.REJECTED

    def test_07_missing_application(self, pipeline):
        with pytest.raises(NotFoundError):
            pipeline.run("6f1c2a52-8a36-4a4b-9a3e-1f0c4d3e2b10")

    def test_08_weight_load_failure_propagates(self, session_factory, registry):
        user_id = add_user(session_factory)
        application_id = add_application(session_factory, user_id, codeforces_handle="tourist")
        weight_cache = Mock()
        weight_cache.get_weights.side_effect = ConfigError("weights unavailable")
        pipeline = VerificationPipeline(session_factory, registry, weight_cache, ScoringConfig())

        with pytest.raises(ConfigError):
            pipeline.run(application_id)
        assert _load(session_factory, application_id)['status'] == "PENDING"

    def test_09_persistence_failure_is_transaction_error(self, pipeline, session_factory, registry):
        user_id = add_user(session_factory)
        application_id = add_application(session_factory, user_id, codeforces_handle="tourist")
        registry.get_provider("competitive-rating").session.request.return_value = _response(200, _rating(2100))

        with patch.object(ApplicationRepository, 'apply_score',
                          side_effect=OperationalError("UPDATE", {}, Exception("database is locked"))):
            with pytest.raises(TransactionError):
                pipeline.run(application_id)

        stored = _load(session_factory, application_id)
        assert stored['status'] == "PENDING"
        assert stored['user_status'] == "PENDING"

    def test_10_configured_thresholds(self, session_factory, registry, mock_redis):
        seed_weights(session_factory)
        weight_cache = WeightCacheService(
            mock_redis,
            weight_loader=lambda: [{'key': 'codeforces_rating', 'weight': 1.0, 'threshold': 2100, 'minimum': 1200}]
        )
        scoring = ScoringConfig(auto_approve_threshold=50, auto_reject_threshold=10)
        pipeline = VerificationPipeline(session_factory, registry, weight_cache, scoring)
        user_id = add_user(session_factory)
        application_id = add_application(session_factory, user_id, codeforces_handle="tourist")
        registry.get_provider("competitive-rating").session.request.return_value = _response(200, _rating(1650))

        outcome = pipeline.run(application_id)

        assert outcome.result.score == 50.0
        assert outcome.decision == Decision.APPROVED

    def test_11_undecryptable_token_falls_back_to_public_profile(self, pipeline, session_factory, registry):
        other = CredentialCipher("another-encryption-key-32bytes!!")
        user_id = add_user(session_factory, github_username="octocat",
                           source_control_token_enc=other.encrypt("gho_token"))
        application_id = add_application(session_factory, user_id, github_url="https://github.com/octocat")
        github = registry.get_provider("source-control")
        github.session.request.return_value = _response(200, {"public_repos": 20})

        outcome = pipeline.run(application_id)

        assert github.session.request.call_args[0] == ("GET", "https://api.github.com/users/octocat")
        assert outcome.failed_providers == []
        assert outcome.result.score == 100.0
