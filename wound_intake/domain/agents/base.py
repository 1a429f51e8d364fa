"""Agent contract shared by every workflow step.

An agent receives a typed input and a run context (current record plus
capability handles) and returns an ``AgentResult``: the step's typed data, an
optional full replacement record, follow-up prompts and new provenance
entries.

Architecture:
    - Capabilities are injected through ``AgentDependencies`` and
      ``AgentRunContext``; unset capabilities are null objects, never None
    - Expected validation deficiencies are returned as data
    - Structural misuse (e.g. wrong artifact kind) raises
    - Before returning a candidate record an agent checks the cancellation
      signal and awaits ``context.autosave(candidate)``
"""

import asyncio
import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from wound_intake.domain.artifact import ArtifactRef
from wound_intake.domain.case_record import CaseRecord, ProvenanceEntry
from wound_intake.domain.null_capabilities import (
    NullCryptoProvider,
    NullPromptLoader,
    NullTextGenerator,
    NullTranscriber,
    noop_autosave,
)
from wound_intake.domain.ports import (
    CryptoPort,
    PromptLoaderPort,
    TextGenerationPort,
    TranscriptionPort,
    raise_if_aborted,
)
from wound_intake.domain.utils import advance_timestamp, utc_now

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")

AutosaveCallback = Callable[[CaseRecord], Awaitable[None]]


@dataclass(frozen=True)
class AgentDependencies:
    """Capabilities available to agents at construction time."""
    prompt_loader: PromptLoaderPort = field(default_factory=NullPromptLoader)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("wound_intake.agents"))
    crypto: CryptoPort = field(default_factory=NullCryptoProvider)
    text_generator: TextGenerationPort = field(default_factory=NullTextGenerator)
    transcriber: TranscriptionPort = field(default_factory=NullTranscriber)


@dataclass(frozen=True)
class AgentRunContext:
    """Per-run context handed to ``Agent.run``.

    Attributes:
        record: Record the agent works against
        artifacts: Known artifacts for the case
        autosave: Async callback persisting a candidate record
        logger: Logger for the run
        abort_signal: Cancellation signal; once set, no record is committed
        crypto: Encryption capability
        text_generator: Text-generation capability
    """
    record: CaseRecord
    artifacts: tuple[ArtifactRef, ...] = ()
    autosave: AutosaveCallback = noop_autosave
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("wound_intake.agents"))
    abort_signal: asyncio.Event = field(default_factory=asyncio.Event)
    crypto: CryptoPort = field(default_factory=NullCryptoProvider)
    text_generator: TextGenerationPort = field(default_factory=NullTextGenerator)

    def with_record(self, record: CaseRecord) -> "AgentRunContext":
        return dataclasses.replace(self, record=record)


@dataclass(frozen=True)
class AgentResult(Generic[OutputT]):
    data: OutputT
    updated_record: Optional[CaseRecord] = None
    follow_ups: list[str] = field(default_factory=list)
    provenance: list[ProvenanceEntry] = field(default_factory=list)


class Agent(ABC, Generic[InputT, OutputT]):
    """Base class for one workflow step.

    Parameters:
        deps: Capabilities injected at construction
    """

    name: str = "Agent"
    prompt_path: Optional[str] = None

    def __init__(self, deps: Optional[AgentDependencies] = None):
        self.deps = deps or AgentDependencies()

    @abstractmethod
    async def run(self, input: InputT, context: AgentRunContext) -> AgentResult[OutputT]:
        pass

    def is_complete(self, context: AgentRunContext) -> bool:
        return False

    def load_prompt(self) -> str:
        """Load this agent's prompt template (empty string when absent)."""
        if not self.prompt_path:
            return ""
        return self.deps.prompt_loader.load(self.prompt_path)

    def provenance(self, field_path: str, notes: Optional[str] = None, artifact_id: Optional[str] = None) -> ProvenanceEntry:
        return ProvenanceEntry(
            agent=self.name,
            field=field_path,
            timestamp=utc_now(),
            artifact_id=artifact_id,
            notes=notes,
        )

    async def commit(
        self,
        context: AgentRunContext,
        record: CaseRecord,
        provenance: list[ProvenanceEntry],
    ) -> CaseRecord:
        """Finalize a candidate record and autosave it.

        Stamps ``updated_at`` strictly after the context record's, appends
        ``provenance`` to the log, checks the cancellation signal and awaits
        the autosave callback.

        Raises:
            OperationCancelledError: If the run was aborted; nothing is saved
        """
        candidate = record.append_provenance(provenance).model_copy(
            update={"updated_at": advance_timestamp(max(record.updated_at, context.record.updated_at))}
        )
        raise_if_aborted(context.abort_signal)
        await context.autosave(candidate)
        return candidate


AgentFactory = Callable[[AgentDependencies], Agent]
