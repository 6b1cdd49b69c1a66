"""
Engine Factory
Centralizes the logic for selecting stores and threshold sources from config.
"""

import logging
from pathlib import Path

from sqlalchemy.engine import make_url

from wordwise.application.config import AppConfig
from wordwise.application.progress_engine import ProgressEngine
from wordwise.domain.ports import ThresholdRepository
from wordwise.infrastructure.adapters.memory_store import InMemoryStore
from wordwise.infrastructure.adapters.sql_store import SqlStore
from wordwise.infrastructure.adapters.yaml_thresholds import YamlThresholdRepository

logger = logging.getLogger(__name__)


def get_store(config: AppConfig) -> InMemoryStore | SqlStore:
    """
    Returns the persistence adapter selected by ``config.backend``.
    """
    if config.backend == "memory":
        return InMemoryStore()

    url = make_url(config.database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    store = SqlStore(database_url=config.database_url)
    store.create_schema()
    logger.debug(f"Using SQL store at {url.render_as_string(hide_password=True)}")
    return store


def get_threshold_repository(
    config: AppConfig, store: InMemoryStore | SqlStore
) -> ThresholdRepository:
    """
    A configured YAML file overrides the thresholds kept in the store.
    """
    if config.thresholds_file is not None:
        return YamlThresholdRepository(config.thresholds_file)
    return store


def build_engine(config: AppConfig) -> ProgressEngine:
    store = get_store(config)
    return ProgressEngine(
        progress_repo=store,
        threshold_repo=get_threshold_repository(config, store),
        catalog=store,
        retry_attempts=config.retry_attempts,
        retry_base_delay=config.retry_base_delay,
        retry_max_delay=config.retry_max_delay,
        default_response_time_ms=config.default_response_time_ms,
    )
