from dataclasses import dataclass
from typing import Optional

from redis import Redis
from sqlalchemy.orm import sessionmaker

from admission.admin import WeightAdminService
from admission.backoff import BackoffStore
from admission.queues import AdmissionQueue
from admission.rate_limiter import SlidingWindowRateLimiter
from admission.refresh import RefreshPipeline
from admission.service import AdmissionService
from admission.verification import VerificationPipeline
from core.cache.connection import create_redis_connection
from core.cache.signal_cache import SignalCacheService
from core.cache.weight_cache import WeightCacheService
from core.config_loader import AppConfig, QueueSettings
from core.credentials import CredentialCipher
from core.providers import ProviderRegistry
from database.database import create_session_factory
from database.uow import admission_uow


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Every shared client (Redis, session factory, provider adapters) is
    built once here and passed in explicitly. DB access should be obtained
    via admission_uow() inside each operation.
    """
    config: AppConfig
    redis_conn: Redis
    queue_conn: Redis
    session_factory: sessionmaker
    providers: ProviderRegistry
    weight_cache: WeightCacheService
    signal_cache: SignalCacheService
    backoff_store: BackoffStore
    verification_queue: AdmissionQueue
    refresh_queue: AdmissionQueue
    verification_limiter: SlidingWindowRateLimiter
    refresh_limiter: SlidingWindowRateLimiter
    verification_pipeline: VerificationPipeline
    refresh_pipeline: RefreshPipeline
    admission_service: AdmissionService
    weight_admin: WeightAdminService
    cipher: Optional[CredentialCipher] = None

    @classmethod
    def build(cls, config: AppConfig) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration

        Returns:
            Fully wired AppContext instance
        """
        redis_cfg = config.redis
        # Caches store JSON text; RQ needs raw bytes
        redis_conn = create_redis_connection(
            redis_cfg.url, redis_cfg.password, decode_responses=True,
            socket_timeout=redis_cfg.socket_timeout_seconds
        )
        queue_conn = create_redis_connection(
            redis_cfg.url, redis_cfg.password, decode_responses=False,
            socket_timeout=redis_cfg.socket_timeout_seconds
        )

        session_factory = create_session_factory(config.database.url)
        providers = ProviderRegistry.from_config(config.providers)
        cipher = CredentialCipher(config.encryption_key) if config.encryption_key else None

        weight_cache = cls._build_weight_cache(config, redis_conn, session_factory)
        signal_cache = SignalCacheService(redis_conn, ttl_seconds=config.scoring.signal_cache_ttl_seconds)
        backoff_store = BackoffStore(
            redis_conn,
            initial_delay_seconds=config.backoff.initial_delay_seconds,
            max_delay_seconds=config.backoff.max_delay_seconds,
            max_attempts=config.backoff.max_attempts,
        )

        verification_queue = AdmissionQueue(queue_conn, config.queues.verification)
        refresh_queue = AdmissionQueue(queue_conn, config.queues.refresh)

        return cls(
            config=config,
            redis_conn=redis_conn,
            queue_conn=queue_conn,
            session_factory=session_factory,
            providers=providers,
            weight_cache=weight_cache,
            signal_cache=signal_cache,
            backoff_store=backoff_store,
            verification_queue=verification_queue,
            refresh_queue=refresh_queue,
            verification_limiter=cls._build_limiter(redis_conn, config.queues.verification),
            refresh_limiter=cls._build_limiter(redis_conn, config.queues.refresh),
            verification_pipeline=VerificationPipeline(
                session_factory, providers, weight_cache, config.scoring, cipher=cipher
            ),
            refresh_pipeline=RefreshPipeline(
                session_factory, providers, backoff_store, signal_cache, cipher=cipher
            ),
            admission_service=AdmissionService(
                session_factory, verification_queue, refresh_queue, providers, signal_cache
            ),
            weight_admin=WeightAdminService(session_factory, weight_cache),
            cipher=cipher,
        )

    @staticmethod
    def _build_weight_cache(
        config: AppConfig,
        redis_conn: Redis,
        session_factory: sessionmaker
    ) -> WeightCacheService:
        """Weight cache backed by a fresh unit of work per store load."""
        def load_weight_rows():
            with admission_uow(session_factory) as repo:
                return repo.weights.list_rows()

        return WeightCacheService(
            redis_conn,
            weight_loader=load_weight_rows,
            ttl_seconds=config.scoring.weights_cache_ttl_seconds
        )

    @staticmethod
    def _build_limiter(redis_conn: Redis, settings: QueueSettings) -> SlidingWindowRateLimiter:
        return SlidingWindowRateLimiter(
            redis_conn,
            name=settings.name,
            max_jobs=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
            max_wait_seconds=settings.rate_limit_max_wait_seconds,
        )

    def close(self) -> None:
        self.providers.close()
        self.session_factory.kw['bind'].dispose()
