from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Proof of Work
    pow_difficulty: int = 4  # leading zero hex nibbles
    challenge_ttl_seconds: int = 300  # 5 minutes
    max_attempts: int = 15
    max_nonce_length: int = 128
    challenge_key_bytes: int = 24
    challenge_secret_bytes: int = 32

    # Credential
    credential_ttl_seconds: int = 36 * 3600
    credential_subject: str = "verified_user"
    jwt_algorithm: str = "HS256"
    cookie_name: str = "mpow_token"
    cookie_secure: bool = True
    verified_redirect_url: str = "/validate"
    challenge_redirect_url: str = "/get_challenge"

    # Cleanup
    sweep_enabled: bool = True
    sweep_interval_seconds: int = 60

    # Rate Limiting
    rate_limit_challenges: str = "30/minute"
    rate_limit_solutions: str = "60/minute"
    rate_limit_validations: str = "120/minute"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # console|json

    @field_validator("pow_difficulty")
    @classmethod
    def validate_difficulty(cls, v: int) -> int:
        """A SHA-256 hex digest has 64 nibbles."""
        if not 1 <= v <= 64:
            raise ValueError("pow_difficulty must be between 1 and 64")
        return v

    @field_validator("challenge_key_bytes", "challenge_secret_bytes")
    @classmethod
    def validate_entropy(cls, v: int) -> int:
        if v < 16:
            raise ValueError("challenge keys and secrets need at least 16 bytes of entropy")
        return v

    @field_validator(
        "challenge_ttl_seconds",
        "credential_ttl_seconds",
        "max_attempts",
        "max_nonce_length",
        "sweep_interval_seconds",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Credentials are signed with a shared process secret, so only HMAC fits."""
        v = v.upper()
        if v not in ("HS256", "HS384", "HS512"):
            raise ValueError("jwt_algorithm must be HS256, HS384 or HS512")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v

    @property
    def difficulty_prefix(self) -> str:
        return "0" * self.pow_difficulty


settings = Settings()
