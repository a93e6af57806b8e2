import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    This class defines all configuration values used by the application,
    including the database connection, the language model endpoint, and the
    timeouts applied to every external collaborator call.

    Attributes:
        database_url (str): SQLAlchemy connection URL for the document and history store.
        llm_enabled (bool): Whether LLM-backed classification and planning are attempted at all.
        llm_endpoint (str | None): Custom OpenAI-compatible endpoint, or None for the default.
        llm_api_key (str | None): API key for the LLM service.
        llm_model_name (str | None): Model name; a default is chosen when unset.
        llm_timeout_seconds (float): Timeout for a single LLM call.
        job_fetch_timeout_seconds (float): Timeout for fetching a job posting by URL.
        render_timeout_seconds (float): Timeout for rendering a preview.
        persistence_timeout_seconds (float): Timeout for a version or history write.
        artifact_dir (str): Directory where rendered previews are written.
        fallback_id_prefix (str): Namespace for identifiers fabricated when storage fails.

    """

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    # Database settings
    database_url: str = Field(
        default="sqlite:///./resume_assistant.db",
        validation_alias="DATABASE_URL",
    )

    # LLM settings
    llm_enabled: bool = Field(default=False, validation_alias="LLM_ENABLED")
    llm_endpoint: str | None = Field(default=None, validation_alias="LLM_ENDPOINT")
    llm_api_key: str | None = Field(default=None, validation_alias="LLM_API_KEY")
    llm_model_name: str | None = Field(
        default=None,
        validation_alias="LLM_MODEL_NAME",
    )

    # Collaborator timeouts
    llm_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        validation_alias="LLM_TIMEOUT_SECONDS",
    )
    job_fetch_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias="JOB_FETCH_TIMEOUT_SECONDS",
    )
    render_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        validation_alias="RENDER_TIMEOUT_SECONDS",
    )
    persistence_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        validation_alias="PERSISTENCE_TIMEOUT_SECONDS",
    )

    # Artifacts
    artifact_dir: str = Field(default="./artifacts", validation_alias="ARTIFACT_DIR")
    fallback_id_prefix: str = Field(
        default="local",
        validation_alias="FALLBACK_ID_PREFIX",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get the global settings instance.

    Args:
        None: This function does not take any arguments.

    Returns:
        Settings: The global settings instance, containing all configuration values.

    Raises:
        ValidationError: If an environment variable holds an invalid value.

    Notes:
        1. Reads configuration from environment variables and the .env file.
        2. If environment variables are not set, default values are used.
        3. The function returns a cached instance to avoid repeated parsing of the .env file.
        4. This function performs disk access to read the .env file on first call.

    """
    return Settings()
