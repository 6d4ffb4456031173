import tomllib
from functools import cached_property
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shms.types.exceptions import (
    DotenvInvalidVariableError,
    DotenvMissingVariableError,
)


class Settings(BaseSettings):
    """
    Settings for SHMS
    The class is based on a dotenv configuration file: `/.env`.

    All undefined variables will be populated from:
    1. An environment variable
    2. The dotenv .env file

    See [Pydantic Settings documentation](https://docs.pydantic.dev/latest/concepts/pydantic_settings/#dotenv-env-support) for more information.
    See [FastAPI settings](https://fastapi.tiangolo.com/advanced/settings/) article for best practices with settings.

    To access these settings, the `get_settings` dependency should be used.
    """

    # By default, the settings are loaded from the `.env` file but this behaviour can be overridden using
    # `_env_file` parameter during instantiation
    # Ex: `Settings(_env_file=".env.dev")`
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ###########
    # Session #
    ###########

    # ACCESS_TOKEN_SECRET_KEY should contain a random string with enough entropy (at least 32 bytes long) to securely sign session tokens
    ACCESS_TOKEN_SECRET_KEY: str
    SESSION_EXPIRE_HOURS: int = 24
    LOGIN_CODE_EXPIRE_MINUTES: int = 10
    # Session cookies are only sent over https when enabled. It should be enabled in production
    SECURE_COOKIES: bool = False

    # Host or url of the frontend, used in links sent by email
    # NOTE: A trailing / is required
    CLIENT_URL: str = "http://127.0.0.1:3000/"

    # Origins allowed to call the API with credentials
    CORS_ORIGINS: list[str] = []

    ############
    # Database #
    ############

    # If the following parameters are not set, a Postgresql database will be used
    SQLITE_DB: str | None = None
    POSTGRES_HOST: str = ""
    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""
    DATABASE_DEBUG: bool = False

    ###########
    # Logging #
    ###########

    LOG_DEBUG_MESSAGES: bool = False

    #########
    # Email #
    #########

    # When SMTP is not active, emails are written to the security log instead of being sent
    SMTP_ACTIVE: bool = False
    SMTP_PORT: int = 587
    SMTP_SERVER: str = ""
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_EMAIL: str = ""
    # Address receiving new booking request notifications
    ADMIN_EMAIL: str = ""

    ############
    # Calendar #
    ############

    # "Today" and the local midnight used by analytics are computed in this timezone
    TIMEZONE: str = "Asia/Kolkata"

    ##################
    # Computed field #
    ##################

    @computed_field  # type: ignore[prop-decorator]
    @cached_property
    def SHMS_VERSION(cls) -> str:
        with Path("pyproject.toml").open("rb") as pyproject_binary:
            pyproject = tomllib.load(pyproject_binary)
        return str(pyproject["project"]["version"])

    @cached_property
    def TZ(cls) -> ZoneInfo:
        return ZoneInfo(cls.TIMEZONE)

    #######################################
    # Fields validation                   #
    #######################################

    @model_validator(mode="after")
    def check_client_url(self) -> "Settings":
        if not self.CLIENT_URL[-1] == "/":
            raise DotenvInvalidVariableError(  # noqa: TRY003
                "CLIENT_URL must contains a trailing slash",
            )
        return self

    @model_validator(mode="after")
    def check_database_settings(self) -> "Settings":
        """
        All fields are optional, but the dotenv should configure SQLITE_DB or a Postgres database
        """
        if not (
            self.SQLITE_DB
            or (
                self.POSTGRES_HOST
                and self.POSTGRES_USER
                and self.POSTGRES_PASSWORD
                and self.POSTGRES_DB
            )
        ):
            raise DotenvMissingVariableError(  # noqa: TRY003
                "Either SQLITE_DB or POSTGRES_HOST, POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB",
            )

        return self

    @model_validator(mode="after")
    def check_secrets(self) -> "Settings":
        if not self.ACCESS_TOKEN_SECRET_KEY:
            raise DotenvMissingVariableError(
                "ACCESS_TOKEN_SECRET_KEY",
            )

        return self

    @model_validator(mode="after")
    def init_cached_property(self) -> "Settings":
        """
        Cached property are not computed during the instantiation of the class, but when they are accessed for the first time.
        By calling them in this validator, we force their initialization during the instantiation of the class.
        This allow them to raise error on startup if they are not correctly configured instead of creating an error on runtime.
        """
        self.SHMS_VERSION  # noqa: B018
        self.TZ  # noqa: B018

        return self


def construct_prod_settings() -> Settings:
    """
    Return the production settings
    """
    return Settings(_env_file=".env")
