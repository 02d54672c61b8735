from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Service identity accepts the Datadog names (DD_SERVICE, DD_ENV, DD_VERSION)
    as well as the OpenTelemetry ones, so the same image can run as Service A
    or Service B by changing only the environment. The values are passed
    through to traces and logs untouched.
    """

    service_name: str = Field(
        default="random-status-api",
        validation_alias=AliasChoices("DD_SERVICE", "OTEL_SERVICE_NAME", "SERVICE_NAME"),
    )
    environment: str = Field(
        default="dev",
        validation_alias=AliasChoices("DD_ENV", "DEPLOYMENT_ENVIRONMENT"),
    )
    version: str = Field(
        default="0.1.0",
        validation_alias=AliasChoices("DD_VERSION", "SERVICE_VERSION"),
    )

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")

    # Full OTLP/HTTP URL, e.g. http://otel-collector:4318/v1/traces
    # Unset means spans are created (and logged) but not exported.
    otlp_traces_endpoint: str | None = Field(
        default=None, alias="OTEL_EXPORTER_OTLP_TRACES_ENDPOINT"
    )

    # Seed for the process-wide random source. Unset = OS entropy.
    random_seed: int | None = Field(default=None, alias="RANDOM_SEED")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
