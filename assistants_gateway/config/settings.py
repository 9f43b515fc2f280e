"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

# Marker meaning "each user supplies this value themselves"
USER_PROVIDED = "user_provided"


class Settings(BaseSettings):
    # Gateway authentication
    # Comma-separated list of valid API keys for callers
    gateway_api_keys: str = "dev-key-1"

    # Azure Assistants endpoint credentials (or USER_PROVIDED)
    azure_assistants_api_key: str = ""
    azure_assistants_base_url: str = ""

    # Outbound transport
    proxy: str = ""  # e.g. http://proxy.internal:3128
    openai_organization: str = ""
    upstream_timeout: float = 60.0

    # Azure group/model routing config (JSON)
    azure_config_path: str = "azure.json"

    # User key store
    user_key_store_backend: str = "json"  # "json" | "dynamodb"
    user_key_path: str = "user_keys.json"
    dynamodb_table_name: str = "assistants-user-keys"
    aws_region: str = "us-east-1"

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated gateway keys."""
        return [k.strip() for k in self.gateway_api_keys.split(",") if k.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
