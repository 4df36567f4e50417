"""Tests for WeightAdminService."""
import uuid

import pytest
from unittest.mock import Mock

from admission.admin import WeightAdminService
from core.exceptions import ConfigError, NotFoundError
from database.uow import admission_uow
from tests import seed_weights


@pytest.fixture
def weight_cache():
    return Mock()


@pytest.fixture
def admin(session_factory, weight_cache):
    seed_weights(session_factory)
    return WeightAdminService(session_factory, weight_cache)


@pytest.mark.db
class TestWeightAdminService:

    def test_01_list_weights_ordered_by_key(self, admin):
        keys = [row['key'] for row in admin.list_weights()]
        assert keys == sorted(keys)
        assert set(keys) == {'github_contributions', 'codeforces_rating', 'leetcode_problems', 'portfolio_quality'}

    def test_02_update_invalidates_cache(self, admin, session_factory, weight_cache):
        admin_id = str(uuid.uuid4())

        updated = admin.update_weight('codeforces_rating', updated_by=admin_id, weight=0.3, threshold=2400)

        assert updated['weight'] == 0.3
        assert updated['threshold'] == 2400
        assert updated['minimum'] == 1200
        weight_cache.invalidate.assert_called_once()

        with admission_uow(session_factory) as repo:
            row = repo.weights.get_by_key('codeforces_rating')
            assert row.weight == 0.3
            assert str(row.updated_by_id) == admin_id

    def test_03_unknown_key(self, admin, weight_cache):
        with pytest.raises(NotFoundError):
            admin.update_weight('stack_overflow_reputation', weight=0.1)
        weight_cache.invalidate.assert_not_called()

    def test_04_invalid_weight_rejected(self, admin, session_factory, weight_cache):
        with pytest.raises(ConfigError):
            admin.update_weight('github_contributions', weight=1.5)

        weight_cache.invalidate.assert_not_called()
        with admission_uow(session_factory) as repo:
            assert repo.weights.get_by_key('github_contributions').weight == 0.35

    def test_05_no_changes(self, admin):
        with pytest.raises(ConfigError):
            admin.update_weight('github_contributions')

    def test_06_invalidation_failure_surfaces(self, admin, weight_cache):
        weight_cache.invalidate.side_effect = ConfigError("redis down")

        with pytest.raises(ConfigError):
            admin.update_weight('leetcode_problems', minimum=10)
