"""Configuration for the LINSTOR volume translation layer."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Self

import yaml
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, Profile, configure_logging
from safir.pydantic import HumanTimedelta

from .constants import (
    ANNOTATIONS_KEY,
    ENV_PREFIX,
    FALLBACK_PREFIX,
    LINSTOR_REQUEST_TIMEOUT,
    ROOT_LOGGER,
)

__all__ = ["Config"]


class EnvFirstSettings(BaseSettings):
    """Settings whose environment variables win over the configuration file.

    The driver deployment sets per-node values such as the controller list
    in the environment, and those must override the shared YAML file.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX, extra="forbid", validate_by_name=True
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Read only the environment and the loaded YAML file, in that order.

        Neither :file:`.env` files nor secret directories are consulted.
        """
        return (env_settings, init_settings)


class Config(EnvFirstSettings):
    """Configuration for talking to LINSTOR."""

    controllers: Annotated[
        str,
        Field(
            title="LINSTOR controllers",
            description=(
                "Comma-separated URLs of the LINSTOR controller REST API. The"
                " first entry is used."
            ),
            examples=["http://linstor-controller:3370"],
            validation_alias=AliasChoices(
                ENV_PREFIX + "CONTROLLERS", "controllers"
            ),
        ),
    ] = "http://localhost:3370"

    annotations_key: Annotated[
        str,
        Field(
            title="Annotation key",
            description=(
                "Key of the resource definition annotation holding the"
                " serialized volume. Changing it hides existing volumes."
            ),
            validation_alias=AliasChoices(
                ENV_PREFIX + "ANNOTATIONS_KEY", "annotationsKey"
            ),
        ),
    ] = ANNOTATIONS_KEY

    fallback_prefix: Annotated[
        str,
        Field(
            title="Fallback name prefix",
            description=(
                "Prefix of generated resource names used when the requested"
                " volume name cannot be used"
            ),
            validation_alias=AliasChoices(
                ENV_PREFIX + "FALLBACK_PREFIX", "fallbackPrefix"
            ),
        ),
    ] = FALLBACK_PREFIX

    timeout: Annotated[
        HumanTimedelta,
        Field(
            title="Request timeout",
            description="Timeout for each request to the LINSTOR controller",
            validation_alias=AliasChoices(ENV_PREFIX + "TIMEOUT", "timeout"),
        ),
    ] = LINSTOR_REQUEST_TIMEOUT

    debug: Annotated[
        bool,
        Field(
            title="Debug logging",
            description=(
                "Log every LINSTOR request and parameter translation at"
                " debug level, formatted for a human reading a terminal"
            ),
        ),
    ] = False

    log_profile: Annotated[
        Profile,
        Field(
            title="Logging profile",
            description="Use production for JSON logs collected from pods",
            validation_alias=AliasChoices(
                ENV_PREFIX + "LOG_PROFILE", "logProfile"
            ),
        ),
    ] = Profile.production

    log_level: Annotated[
        LogLevel,
        Field(
            title="Log level",
            description="Minimum level of driver log messages to emit",
            validation_alias=AliasChoices(
                ENV_PREFIX + "LOG_LEVEL", "logLevel"
            ),
        ),
    ] = LogLevel.INFO

    add_timestamp: Annotated[
        bool,
        Field(
            title="Add timestamp to log lines",
            description=(
                "Only needed when the container runtime does not already"
                " timestamp driver output"
            ),
            validation_alias=AliasChoices(
                ENV_PREFIX + "ADD_TIMESTAMP", "addTimestamp"
            ),
        ),
    ] = False

    alert_hook: Annotated[
        SecretStr | None,
        Field(
            title="Slack webhook for volume operation failures",
            description=(
                "Secret https URL that receives a message when a command"
                " fails against LINSTOR. Alerts are off when unset."
            ),
            validation_alias=AliasChoices(
                ENV_PREFIX + "ALERT_HOOK", "alertHook"
            ),
        ),
    ] = None

    @field_validator("controllers")
    @classmethod
    def _validate_controllers(cls, v: str) -> str:
        if not any(c.strip() for c in v.split(",")):
            raise ValueError("At least one LINSTOR controller is required")
        return v

    @property
    def controller_url(self) -> str:
        """URL of the LINSTOR controller to use."""
        controllers = [c.strip() for c in self.controllers.split(",")]
        first = next(c for c in controllers if c)
        if "://" not in first:
            first = f"http://{first}"
        return first.rstrip("/")

    @property
    def timeout_seconds(self) -> float:
        """Request timeout in seconds, as expected by HTTPX."""
        return self.timeout.total_seconds()

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Construct the configuration from a YAML file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.

        Returns
        -------
        Config
            The corresponding configuration.
        """
        with path.open("r") as f:
            config = cls(**(yaml.safe_load(f) or {}))
        config.configure_logging()
        return config

    def configure_logging(self) -> None:
        """Configure logging based on the configuration."""
        if self.debug:
            log_level = LogLevel.DEBUG
            log_profile = Profile.development
        else:
            log_level = self.log_level
            log_profile = self.log_profile

        configure_logging(
            profile=log_profile,
            log_level=log_level,
            add_timestamp=self.add_timestamp,
            name=ROOT_LOGGER,
        )
