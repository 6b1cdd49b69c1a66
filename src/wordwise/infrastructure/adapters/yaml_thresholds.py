"""
YAML threshold source: reads the threshold table from a file on every call.

Accepted layouts::

    thresholds:
      - state: learning
        min_mastery_level: 1
        next_review_delay: 4 hours

or the bare list of rows.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

import yaml

from wordwise.application.scheduling.thresholds import StateThresholdRow, parse_threshold_rows
from wordwise.domain.exceptions import ConfigurationError
from wordwise.domain.models import StateThreshold
from wordwise.domain.ports import ThresholdRepository

logger = logging.getLogger(__name__)


class YamlThresholdRepository(ThresholdRepository):
    """Edits to the file apply to the next review without a restart."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def get_state_thresholds(self) -> list[StateThreshold]:
        return load_thresholds_file(self.path)

    async def replace_state_thresholds(self, thresholds: Sequence[StateThreshold]) -> None:
        rows = [
            StateThresholdRow.from_domain(t).model_dump(mode="json") for t in thresholds
        ]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump({"thresholds": rows}, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )


def load_thresholds_file(path: Path, strict: bool = False) -> list[StateThreshold]:
    """
    Parse a thresholds YAML file.

    Raises:
        ConfigurationError: The file is missing, unreadable or not a list of rows.
        ValidationError: With ``strict``, a row is malformed or repeats a state.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read thresholds file {path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in thresholds file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("thresholds")
    if not isinstance(data, list):
        raise ConfigurationError(
            f"Thresholds file {path} must contain a list of rows "
            "(or a mapping with a 'thresholds' list)"
        )

    thresholds = parse_threshold_rows(data, strict=strict)
    if not thresholds:
        logger.warning(f"Thresholds file {path} contains no valid rows")
    return thresholds
