"""Session environment: capabilities and repositories built from configuration.

Security Impact:
    - A missing or invalid encryption key degrades to the null provider with
      a warning; the data steward and export agent then report the gap
    - Secrets are unwrapped only inside the adapters that need them
"""

import logging
from pathlib import Path
from typing import Optional, Union

from wound_intake.adapters.llm.gemini_client import GeminiClient
from wound_intake.adapters.prompt_loader import FilePromptLoader
from wound_intake.adapters.storage.duckdb_repository import DuckDBCaseRecordRepository
from wound_intake.adapters.storage.registry import RepositoryRegistry
from wound_intake.adapters.transcription import PlaceholderTranscriber
from wound_intake.domain.agents.base import AgentDependencies
from wound_intake.domain.null_capabilities import NullCryptoProvider, NullTextGenerator
from wound_intake.domain.ports import CryptoPort, EncryptionError, StorageError, TextGenerationPort
from wound_intake.infrastructure.config_manager import ConfigManager, EncryptionConfig, LlmConfig, StorageConfig
from wound_intake.infrastructure.encryption.field_encryption import EnvKeyCryptoProvider

logger = logging.getLogger(__name__)


def build_crypto_provider(config: EncryptionConfig) -> CryptoPort:
    """Field encryption from configuration, or the null provider when unavailable."""
    if not config.enabled:
        logger.warning("Field encryption disabled: FIELD_ENCRYPTION_KEY is not set")
        return NullCryptoProvider()
    try:
        return EnvKeyCryptoProvider.from_config(config)
    except (EncryptionError, ValueError) as e:
        logger.warning(f"Crypto provider unavailable: {e}")
        return NullCryptoProvider()


def build_text_generator(config: LlmConfig) -> TextGenerationPort:
    """Gemini client when an API key is configured, otherwise the null generator."""
    if not config.enabled:
        logger.info("Text generation disabled: GEMINI_API_KEY is not set")
        return NullTextGenerator()
    try:
        return GeminiClient(config)
    except ValueError as e:
        logger.warning(f"Text generation unavailable: {e}")
        return NullTextGenerator()


def build_agent_dependencies(
    config_manager: ConfigManager,
    prompt_dir: Union[str, Path],
    agent_logger: Optional[logging.Logger] = None,
) -> AgentDependencies:
    """Assemble the capabilities handed to every agent."""
    return AgentDependencies(
        prompt_loader=FilePromptLoader(prompt_dir),
        logger=agent_logger or logging.getLogger("wound_intake.agents"),
        crypto=build_crypto_provider(config_manager.encryption),
        text_generator=build_text_generator(config_manager.llm),
        transcriber=PlaceholderTranscriber(),
    )


def build_repository_registry(storage: StorageConfig) -> RepositoryRegistry:
    """Registry over a shared DuckDB repository, or per-case memory repositories.

    Raises:
        StorageError: If the DuckDB schema cannot be initialized
    """
    if storage.backend == "duckdb":
        repository = DuckDBCaseRecordRepository(storage_config=storage)
        result = repository.initialize_schema()
        if not result.is_success():
            raise StorageError(result.error or "Schema initialization failed", operation="initialize_schema")
        logger.info(f"Using DuckDB case storage at {repository.db_path}")
        return RepositoryRegistry(shared=repository)
    logger.info("Using in-memory case storage")
    return RepositoryRegistry()
