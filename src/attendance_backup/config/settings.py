"""Environment-backed store settings.

Values come from the process environment or a ``.env`` file in the working
directory.  Empty variables are treated as unset, so an empty
``SUPABASE_SERVICE_ROLE_KEY`` falls through to ``SUPABASE_KEY``.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Raw settings read from the environment.

    ``load_config()`` turns these into a validated ``BackupConfig``; nothing
    else should read them directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")

    # Service role key takes precedence over the anon/public key
    supabase_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_KEY"),
    )

    # Only used with provider = "postgres"
    database_url: str = Field(default="", validation_alias="DATABASE_URL")

    provider: str | None = Field(default=None, validation_alias="ATTENDANCE_BACKUP_PROVIDER")
    home: str | None = Field(default=None, validation_alias="ATTENDANCE_BACKUP_HOME")
    transactional: bool | None = Field(
        default=None, validation_alias="ATTENDANCE_BACKUP_TRANSACTIONAL"
    )
