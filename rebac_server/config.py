import logging

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    db_url: str = "sqlite+pysqlite:///:memory:"

    # Resolution limits
    resolve_max_depth: int = Field(gt=0, default=25, description="Maximum nesting of relation lookups per check")
    check_timeout_ms: int = Field(ge=0, default=0, description="Check deadline in ms, 0 disables it")
    max_tuples_per_write: int = Field(gt=0, default=100, description="Upper bound on writes + deletes per batch")
    list_objects_max_results: int = Field(gt=0, default=1000)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix='rebac_')


@lru_cache()
def get_settings():
    return Settings()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Logging configured at %s", level.upper())
