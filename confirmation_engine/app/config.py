"""Config file."""
from urllib.parse import quote_plus

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from confirmation_engine.app.domain.models import ConfirmatorConfig, EmissionPolicy


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field("confirmation-engine", alias="PROJECT_NAME")

    # DATABASE
    postgres_user: str = Field("postgres", alias="POSTGRES_USER")
    postgres_password: SecretStr = Field(SecretStr(""), alias="POSTGRES_PASSWORD")
    postgres_server: str = Field("localhost", alias="POSTGRES_SERVER")
    postgres_port: int = Field(5432, alias="POSTGRES_PORT")
    postgres_db: str = Field("confirmator", alias="POSTGRES_DB")
    database_url: str | None = Field(None, alias="DATABASE_URL")
    sync_database_url: str | None = Field(None, alias="SYNC_DATABASE_URL")

    # CHAIN
    rpc_url: str = Field("http://localhost:8545", alias="RPC_URL")
    rpc_timeout_seconds: int = Field(30, alias="RPC_TIMEOUT_SECONDS", gt=0)
    contract_address: str = Field("", alias="CONTRACT_ADDRESS")

    # CONFIRMATIONS
    delete_target_confirmations_multiplier: float = Field(
        2, alias="DELETE_TARGET_CONFIRMATIONS_MULTIPLIER", ge=1
    )
    default_target_confirmation: int = Field(6, alias="DEFAULT_TARGET_CONFIRMATION", ge=1)
    emission_policy: EmissionPolicy = Field(EmissionPolicy.THRESHOLD, alias="EMISSION_POLICY")
    revalidate_emitted: bool = Field(False, alias="REVALIDATE_EMITTED_EVENTS")
    block_tracker_namespace: str | None = Field(None, alias="BLOCK_TRACKER_NAMESPACE")
    poll_interval_seconds: float = Field(5.0, alias="POLL_INTERVAL_SECONDS", gt=0)

    @model_validator(mode="after")
    def assemble_db_urls(self) -> "Settings":
        user = quote_plus(self.postgres_user)
        password = quote_plus(self.postgres_password.get_secret_value())
        host = self.postgres_server
        port = self.postgres_port
        db = self.postgres_db

        if not self.database_url:
            self.database_url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

        if not self.sync_database_url:
            self.sync_database_url = f"postgresql://{user}:{password}@{host}:{port}/{db}"

        if not self.block_tracker_namespace:
            self.block_tracker_namespace = self.project_name

        return self

    def confirmator_config(self, contract_address: str | None = None) -> ConfirmatorConfig:
        address = contract_address or self.contract_address
        if not address:
            raise ValueError("contract address is not configured (set CONTRACT_ADDRESS)")
        return ConfirmatorConfig(
            contract_address=address.lower(),
            delete_target_confirmations_multiplier=self.delete_target_confirmations_multiplier,
            emission_policy=self.emission_policy,
            revalidate_emitted=self.revalidate_emitted,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )


settings: Settings = Settings()
