#!/usr/bin/env python3
"""
Verification Pipeline - scores one application end to end.

Steps:
1. Read the application and decrypt the applicant's source-control token
2. Load weights and fetch every available signal concurrently
3. Score and bucket the result
4. Write application score/status (and user status) in one transaction

Provider failures never fail the job: the signal is simply absent and
the remaining weights carry the score.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.cache.weight_cache import WeightCacheService
from core.config_loader import ScoringConfig
from core.credentials import CredentialCipher, reveal_credential
from core.exceptions import NotFoundError, TransactionError
from core.providers import FetchResult, ProviderRegistry, SignalProvider
from core.scorer import Decision, ScoringResult, compute_score, derive_decision
from database.uow import admission_uow

logger = logging.getLogger(__name__)

# (provider, identifier, credential)
ProofRequest = Tuple[SignalProvider, str, Optional[str]]


@dataclass
class VerificationOutcome:
    application_id: str
    decision: Decision
    result: ScoringResult
    failed_providers: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'application_id': self.application_id,
            'decision': self.decision.value,
            'score': self.result.score,
            'passed': self.result.passed,
            'failed_providers': list(self.failed_providers),
        }


class VerificationPipeline:
    def __init__(
        self,
        session_factory: sessionmaker,
        providers: ProviderRegistry,
        weight_cache: WeightCacheService,
        scoring_config: ScoringConfig,
        cipher: Optional[CredentialCipher] = None
    ):
        self.session_factory = session_factory
        self.providers = providers
        self.weight_cache = weight_cache
        self.scoring_config = scoring_config
        self.cipher = cipher

    def run(self, application_id: str) -> VerificationOutcome:
        """
        Score and decide one application.

        Raises:
            NotFoundError: Application (or its user) does not exist
            ConfigError: Scoring weights could not be loaded
            TransactionError: The decision could not be persisted
        """
        proofs = self._load_proofs(application_id)
        weights, results = self._gather(proofs)

        signals = [r.signal for r in results if r.ok]
        failed = [r.provider for r in results if not r.ok]

        cfg = self.scoring_config
        result = compute_score(signals, weights, cfg.pass_threshold)
        decision = derive_decision(result.score, cfg.auto_approve_threshold, cfg.auto_reject_threshold)

        self._persist(application_id, result, decision)

        logger.info(
            f"Application {application_id} scored {result.score} -> {decision.value}"
            + (f" (missing: {', '.join(failed)})" if failed else "")
        )
        return VerificationOutcome(
            application_id=str(application_id),
            decision=decision,
            result=result,
            failed_providers=failed,
        )

    def _load_proofs(self, application_id: str) -> List[ProofRequest]:
        with admission_uow(self.session_factory) as repo:
            application = repo.applications.get_by_id(application_id)
            if application is None:
                raise NotFoundError("Application", application_id)

            user = application.user
            proofs = []
            for provider in self.providers:
                identifier = provider.identifier_from_application(application)
                if not identifier:
                    continue
                credential = None
                if provider.accepts_credential and user is not None:
                    credential = reveal_credential(
                        self.cipher, user.source_control_token_enc, f"user {user.id}"
                    )
                proofs.append((provider, identifier, credential))
            return proofs

    def _gather(self, proofs: List[ProofRequest]):
        with ThreadPoolExecutor(max_workers=len(proofs) + 1) as executor:
            weights_future = executor.submit(self.weight_cache.get_weights)
            fetch_futures = [
                executor.submit(provider.fetch_result, identifier, credential)
                for provider, identifier, credential in proofs
            ]

            results: List[FetchResult] = [f.result() for f in fetch_futures]
            weights = weights_future.result()

        for r in results:
            if not r.ok:
                logger.warning(f"Signal from {r.provider} unavailable: {r.error}")
        return weights, results

    def _persist(self, application_id: str, result: ScoringResult, decision: Decision) -> None:
        try:
            with admission_uow(self.session_factory) as repo:
                application = repo.applications.get_by_id(application_id)
                if application is None:
                    raise NotFoundError("Application", application_id)

                repo.applications.apply_score(
                    application,
                    score=result.score,
                    score_breakdown=result.breakdown_as_dict(),
                    passing_threshold=result.passing_threshold,
                    status=decision.value,
                )

                if decision.is_terminal_for_user:
                    user = repo.users.get_by_id(application.user_id)
                    if user is None:
                        raise NotFoundError("User", application.user_id)
                    repo.users.set_status(user, decision.value)
        except SQLAlchemyError as e:
            raise TransactionError(
                f"Failed to persist decision for application {application_id}: {e}"
            ) from e
