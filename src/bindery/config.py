"""Container settings, read from ``BINDERY_*`` environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContainerSettings(BaseSettings):
    """Runtime settings of a container.

    Attributes:
        environment: Name matched against ``@binds_to(..., environments=...)`` declarations.
        thread_safe: Guard registries and shared builds with locks.
    """

    model_config = SettingsConfigDict(env_prefix="BINDERY_")

    environment: str = Field(default="production", description="Active application environment.")
    thread_safe: bool = Field(default=True, description="Use locks around registries and shared builds.")
