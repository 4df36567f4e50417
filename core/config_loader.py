import yaml
import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class DatabaseConfig(BaseModel):
    url: str


class RedisConfig(BaseModel):
    url: str = "redis://localhost:6379/0"
    password: Optional[str] = None
    socket_timeout_seconds: int = 5


class ScoringConfig(BaseModel):
    """
    Admission thresholds and cache lifetimes.

    score >= auto_approve_threshold -> APPROVED
    score <  auto_reject_threshold  -> REJECTED
    anything in between             -> UNDER_REVIEW
    """
    pass_threshold: float = 70.0
    auto_approve_threshold: float = 90.0
    auto_reject_threshold: float = 30.0

    weights_cache_ttl_seconds: int = 300  # 5 minutes
    signal_cache_ttl_seconds: int = 86400  # 24 hours

    @model_validator(mode='after')
    def _check_thresholds(self) -> 'ScoringConfig':
        if self.auto_reject_threshold > self.auto_approve_threshold:
            raise ValueError(
                "auto_reject_threshold must not exceed auto_approve_threshold"
            )
        return self


class QueueSettings(BaseModel):
    """Per-queue worker, rate limit and retry settings."""
    name: str
    concurrency: int = Field(default=1, ge=1)

    # Sliding window: at most rate_limit_max executions per window
    rate_limit_max: int = Field(default=10, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_max_wait_seconds: float = 120.0

    # Job-level retry policy (total attempts, exponential delay)
    attempts: int = Field(default=3, ge=1)
    backoff_delay_seconds: int = Field(default=5, ge=0)

    # Stall timeout per attempt
    job_timeout_seconds: int = 300
    # How long an idempotency claim survives without being released
    claim_ttl_seconds: int = 3600

    result_ttl_seconds: int = 86400
    failure_ttl_seconds: int = 7 * 86400

    def retry_intervals(self) -> list:
        """Delays between attempts: delay, 2*delay, 4*delay, ..."""
        return [self.backoff_delay_seconds * (2 ** i) for i in range(self.attempts - 1)]


class QueuesConfig(BaseModel):
    verification: QueueSettings = QueueSettings(
        name="verification",
        concurrency=5,
        rate_limit_max=10,
        rate_limit_window_seconds=60,
        attempts=3,
        backoff_delay_seconds=5,
    )
    refresh: QueueSettings = QueueSettings(
        name="refresh-data",
        concurrency=3,
        rate_limit_max=5,
        rate_limit_window_seconds=60,
        attempts=5,
        backoff_delay_seconds=10,
    )


class BackoffConfig(BaseModel):
    """Per (user, provider) throttle used by the refresh pipeline."""
    initial_delay_seconds: float = 30.0
    max_delay_seconds: float = 3600.0  # 1 hour cap
    max_attempts: int = 16


class ProvidersConfig(BaseModel):
    github_api_url: str = "https://api.github.com"
    codeforces_api_url: str = "https://codeforces.com/api"
    leetcode_graphql_url: str = "https://leetcode.com/graphql"
    request_timeout_seconds: float = 10.0
    max_retries: int = 2  # transient errors only (timeouts, 5xx)


class ScheduleConfig(BaseModel):
    refresh_interval_seconds: int = 6 * 3600


class AppConfig(BaseModel):
    database: DatabaseConfig
    redis: RedisConfig = RedisConfig()
    scoring: ScoringConfig = ScoringConfig()
    queues: QueuesConfig = QueuesConfig()
    backoff: BackoffConfig = BackoffConfig()
    providers: ProvidersConfig = ProvidersConfig()
    schedule: ScheduleConfig = ScheduleConfig()

    # 32-byte AES-256-GCM key for stored OAuth tokens; usually set via ENCRYPTION_KEY
    encryption_key: Optional[str] = None

    @field_validator('encryption_key')
    @classmethod
    def _check_encryption_key(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value.encode('utf-8')) != 32:
            raise ValueError("encryption_key must be exactly 32 bytes")
        return value


_SCORING_ENV_OVERRIDES = {
    "SCORING_PASS_THRESHOLD": "pass_threshold",
    "SCORING_AUTO_APPROVE_THRESHOLD": "auto_approve_threshold",
    "SCORING_AUTO_REJECT_THRESHOLD": "auto_reject_threshold",
}


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from another dir), use the repo root config
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Allow env var override for DB URL
    env_db_url = os.environ.get("DATABASE_URL")
    if env_db_url:
        if not data.get('database'):
            data['database'] = {}
        data['database']['url'] = env_db_url

    # Allow env var override for Redis URL
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        if not data.get('redis'):
            data['redis'] = {}
        data['redis']['url'] = env_redis_url

    # Allow env var override for admission thresholds
    for env_name, field_name in _SCORING_ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            if not data.get('scoring'):
                data['scoring'] = {}
            data['scoring'][field_name] = float(env_value)

    # Keep the token key out of the config file where possible
    env_encryption_key = os.environ.get("ENCRYPTION_KEY")
    if env_encryption_key:
        data['encryption_key'] = env_encryption_key

    return AppConfig(**data)
