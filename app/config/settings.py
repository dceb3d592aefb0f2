from typing import Literal, Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AwsConfig(BaseSettings):
    """Shared AWS client configuration"""

    region: str = "us-east-1"
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    api_timeout_seconds: int = Field(default=30, ge=1)
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Network-level retries handled by botocore, not the questionnaire.",
    )

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PollyConfig(BaseSettings):
    """Amazon Polly configuration."""

    region: Optional[str] = None
    voice_id: str = "Joanna"
    engine: str = "neural"
    output_format: str = "mp3"

    model_config = SettingsConfigDict(
        env_prefix="POLLY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class TranscribeConfig(BaseSettings):
    """Amazon Transcribe Streaming configuration."""

    region: Optional[str] = None
    language_code: str = "en-US"
    media_sample_rate_hz: int = 16000
    chunk_size: int = Field(default=3200, ge=1)
    timeout_seconds: float = Field(default=60.0, gt=0)
    realtime_pacing: bool = True

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: Optional[str] = Field(
        default=None,
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="anthropic.claude-3-haiku-20240307-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=500,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=4096,
    )
    temperature: float = Field(
        default=0.3,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class AudioConfig(BaseSettings):
    """Bounds applied to uploaded answer recordings."""

    min_size_bytes: int = Field(default=1000, ge=0)
    max_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class SessionConfig(BaseSettings):
    """Questionnaire session storage configuration."""

    timeout_minutes: int = Field(default=30, ge=1)
    backend: Literal["memory", "database"] = "memory"
    key_prefix: str = "questionnaire:session:"

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class QuestionnaireConfig(BaseSettings):
    """Classification and retry policy."""

    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    max_retries: Optional[int] = Field(
        default=None,
        ge=1,
        description="Leave unset for unlimited retries.",
    )
    classification_timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="QUESTIONNAIRE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "voice_questionnaire"
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Voice Questionnaire System"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    transcript_log_file: str = "logs/transcripts.log"

    # AWS
    aws: AwsConfig = Field(default_factory=AwsConfig)

    # Polly
    polly: PollyConfig = Field(default_factory=PollyConfig)

    # Transcribe
    transcribe: TranscribeConfig = Field(default_factory=TranscribeConfig)

    # Bedrock
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # Audio
    audio: AudioConfig = Field(default_factory=AudioConfig)

    # Sessions
    session: SessionConfig = Field(default_factory=SessionConfig)

    # Questionnaire policy
    questionnaire: QuestionnaireConfig = Field(default_factory=QuestionnaireConfig)

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
