"""File-system prompt loader."""

import logging
from pathlib import Path
from typing import Union

from wound_intake.domain.ports import PromptLoaderPort

logger = logging.getLogger(__name__)


class FilePromptLoader(PromptLoaderPort):
    """Loads prompt templates from a flat directory of markdown files.

    Agent prompt paths such as ``prompts/bio.md`` resolve to
    ``<prompt_dir>/bio.md``; absolute paths are read as given.

    Parameters:
        prompt_dir: Directory holding the templates
    """

    def __init__(self, prompt_dir: Union[str, Path]):
        self.prompt_dir = Path(prompt_dir)
        self._cache: dict[str, str] = {}

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.prompt_dir / candidate.name

    def load(self, path: str) -> str:
        if path in self._cache:
            return self._cache[path]
        full_path = self.resolve(path)
        try:
            text = full_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning(f"Prompt template not found: {full_path}")
            return ""
        self._cache[path] = text
        return text
