from functools import lru_cache
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    supabase_url: str | None = Field(default=None, validation_alias="SUPABASE_URL")
    # Service role key: id_mappings writes bypass RLS.
    supabase_service_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_SERVICE_KEY", "SUPABASE_KEY"),
    )

    # Seed salt for derived identifiers. Changing it remaps every migrated row.
    id_salt: str = Field(default="totalis", validation_alias="ID_SALT")
    id_mappings_table: str = Field(default="id_mappings", validation_alias="ID_MAPPINGS_TABLE")
    mapping_batch_size: int = Field(default=100, validation_alias="MAPPING_BATCH_SIZE")

    # Storage buckets created by the image migration
    coach_images_bucket: str = Field(default="coach-images", validation_alias="COACH_IMAGES_BUCKET")
    category_icons_bucket: str = Field(
        default="category-icons", validation_alias="CATEGORY_ICONS_BUCKET"
    )
    probe_timeout_seconds: float = Field(default=5.0, validation_alias="PROBE_TIMEOUT_SECONDS")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_to_file: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    log_file_path: str = Field(
        default=os.path.join("logs", "migration.log"),
        validation_alias="LOG_FILE_PATH",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
