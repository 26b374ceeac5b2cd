"""
Application configuration.
All settings are loaded from environment variables (or a local .env file).
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: SESSION_SECRET has no default - it MUST be set in the environment.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated origins. Empty = "*".
    cors_origins: str = ""

    # ===========================================
    # STATE STORE
    # ===========================================
    store_backend: str = "memory"  # memory, redis
    redis_url: str = "redis://localhost:6379/0"

    # ===========================================
    # CHALLENGES
    # ===========================================
    challenge_ttl_seconds: int = 300
    # Expired challenges are kept this long so late callers get 410 instead of 404
    challenge_retention_seconds: int = 600

    # ===========================================
    # SESSION CREDENTIALS
    # ===========================================
    session_secret: str  # Required, no default
    session_ttl_seconds: int = 1800
    session_algorithm: str = "HS256"

    # ===========================================
    # PRICING
    # ===========================================
    default_unlock_minutes: int = 30
    max_unlock_minutes: int = 1440

    # ===========================================
    # BASE (EVM) - USDC
    # ===========================================
    base_rpc_url: str = "https://mainnet.base.org"
    base_usdc_contract: str = "0xd9aAEc86B65D86f6A7b5b1b0c42fff0905A1aA77"
    base_usdc_receiver: str = "0x8469a3A136AE586356bAA89C61191D8E2d84B92f"
    base_usdc_decimals: int = 6

    # ===========================================
    # SOLANA - TSE
    # ===========================================
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    solana_commitment: str = "confirmed"
    # Solana methods are registered only when both mint and receiver are set
    tse_mint: str = ""
    tse_receiver: str = ""
    tse_decimals: int = 9

    # ===========================================
    # VERIFICATION
    # ===========================================
    balance_check_enabled: bool = True
    # Registers the "testing" payment method that verifies everything. Never in production.
    testing_mode_enabled: bool = False
    # None = used transaction proofs never expire
    used_proof_ttl_seconds: int | None = None

    # ===========================================
    # CHAIN RPC
    # ===========================================
    rpc_timeout_seconds: float = 10.0
    rpc_max_attempts: int = 3
    rpc_backoff_seconds: float = 0.5

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("memory", "redis"):
            raise ValueError("store_backend must be 'memory' or 'redis'")
        return v

    @field_validator("session_secret")
    @classmethod
    def validate_session_secret(cls, v: str) -> str:
        """Ensure the credential signing secret is reasonably secure."""
        if len(v) < 32:
            raise ValueError("session_secret must be at least 32 characters")
        if v.lower().startswith(("changeme", "secret", "password")):
            raise ValueError("session_secret is too weak, please change it")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]

    @property
    def solana_enabled(self) -> bool:
        return bool(self.tse_mint and self.tse_receiver)

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
