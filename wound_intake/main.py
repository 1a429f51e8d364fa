"""Composition root for the Wound Intake session engine.

This module wires configuration into concrete adapters: the repository
registry, the agent capabilities and the PIN hasher. The CLI (and any
request layer) builds its sessions through these factories.

Security Impact:
    - Configuration is loaded securely via the configuration manager
    - Missing encryption keys degrade visibly (warnings, blocked export)
      instead of silently storing plaintext as encrypted

Architecture:
    - Follows Hexagonal Architecture principles
    - Storage backend is selected via configuration (memory or DuckDB)
    - Domain code never imports this module
"""

import asyncio
import logging
from typing import Optional

from wound_intake.adapters.storage.registry import RepositoryRegistry
from wound_intake.domain.agents.base import AgentDependencies
from wound_intake.infrastructure.encryption.pin_hash import PinHasher
from wound_intake.infrastructure.settings import Settings, get_settings
from wound_intake.session.controller import SessionController
from wound_intake.session.environment import build_agent_dependencies, build_repository_registry
from wound_intake.session.runtime import open_session

logger = logging.getLogger(__name__)


def create_repository_registry(settings: Optional[Settings] = None) -> RepositoryRegistry:
    """Create the repository registry based on configuration.

    Returns:
        RepositoryRegistry: Shared DuckDB repository or per-case memory repositories

    Raises:
        StorageError: If the configured database cannot be initialized
    """
    settings = settings or get_settings()
    return build_repository_registry(settings.config_manager.storage)


def create_agent_dependencies(settings: Optional[Settings] = None) -> AgentDependencies:
    """Create the capabilities handed to every agent."""
    settings = settings or get_settings()
    return build_agent_dependencies(settings.config_manager, settings.prompt_dir)


def create_pin_hasher(settings: Optional[Settings] = None) -> PinHasher:
    """Create the PIN hasher.

    Raises:
        ValueError: If PIN_HASH_PEPPER is not configured
    """
    settings = settings or get_settings()
    pepper = settings.config_manager.encryption.pin_pepper
    return PinHasher(pepper.get_secret_value() if pepper else "")


async def open_case_session(
    case_id: Optional[str],
    clinician_id: Optional[str],
    registry: RepositoryRegistry,
    dependencies: Optional[AgentDependencies] = None,
    abort_signal: Optional[asyncio.Event] = None,
) -> SessionController:
    """Open the controller for one case with configured capabilities."""
    return await open_session(
        case_id,
        clinician_id,
        registry,
        dependencies=dependencies or create_agent_dependencies(),
        abort_signal=abort_signal,
    )
