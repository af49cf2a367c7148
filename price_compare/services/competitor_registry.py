"""Read-only competitor registry backed by a YAML file.

Competitor configurations are owned by back-office tooling; the comparison
engine only reads them. Each call returns a fresh list, so a caller that
holds on to it keeps a stable snapshot for the whole run even if the file
changes underneath.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..config import config
from ..errors import CompetitorConfigError
from ..models import CompetitorConfig

logger = logging.getLogger(__name__)


class YamlCompetitorRegistry:
    """Competitor registry reading a `competitors:` list from YAML.

    Args:
        path: Registry file, defaults to the configured competitors file.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else config.competitors_path

    def _load(self) -> list[CompetitorConfig]:
        """Parse and validate the registry file.

        Raises:
            CompetitorConfigError: If the file is missing, malformed, holds an
                invalid entry or repeats a competitor name.
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                data: Any = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise CompetitorConfigError(f"Cannot read competitor registry {self.path}: {e}") from e

        entries = data.get("competitors") if isinstance(data, dict) else None
        if entries is None:
            return []
        if not isinstance(entries, list):
            raise CompetitorConfigError(f"'competitors' must be a list in {self.path}")

        competitors: list[CompetitorConfig] = []
        seen: set[str] = set()
        for index, entry in enumerate(entries):
            try:
                competitor = CompetitorConfig.model_validate(entry)
            except ValidationError as e:
                raise CompetitorConfigError(
                    f"Invalid competitor #{index + 1} in {self.path}: {e}"
                ) from e

            if competitor.name in seen:
                raise CompetitorConfigError(f"Duplicate competitor name: {competitor.name}")
            seen.add(competitor.name)
            competitors.append(competitor)

        return competitors

    def list_all(self) -> list[CompetitorConfig]:
        """All configured competitors, active or not, in file order."""
        return self._load()

    def list_active(self) -> list[CompetitorConfig]:
        """Active competitors in file order."""
        active = [competitor for competitor in self._load() if competitor.is_active]
        logger.debug(f"Loaded {len(active)} active competitors from {self.path}")
        return active

    def get(self, name: str) -> CompetitorConfig | None:
        """Look up a competitor by name."""
        for competitor in self._load():
            if competitor.name == name:
                return competitor
        return None
