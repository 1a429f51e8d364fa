"""Workflow agents, one per intake step."""

from wound_intake.domain.agents.base import (
    Agent,
    AgentDependencies,
    AgentFactory,
    AgentResult,
    AgentRunContext,
)
from wound_intake.domain.agents.bio_agent import (
    BioAgent,
    BioAgentInput,
    BioAgentOutput,
    SourceInfo,
    compute_missing_fields,
)
from wound_intake.domain.agents.data_steward_agent import DataStewardAgent, DataStewardInput, DataStewardOutput
from wound_intake.domain.agents.export_agent import ExportAgent, ExportAgentInput, ExportAgentOutput
from wound_intake.domain.agents.followup_agent import FollowupAgent, FollowupAgentInput, FollowupAgentOutput
from wound_intake.domain.agents.input_router import (
    DirectInput,
    InputRouter,
    InputRouterInput,
    InputRouterOutput,
)
from wound_intake.domain.agents.ocr_asr_agent import OcrAsrAgent, OcrAsrInput, OcrAsrOutput
from wound_intake.domain.agents.security_agent import SecurityAgent, SecurityAgentInput, SecurityAgentOutput
from wound_intake.domain.agents.time_agent import TimeAgent, TimeAgentInput, TimeAgentOutput
from wound_intake.domain.agents.vitals_agent import VitalsAgent, VitalsAgentInput, VitalsAgentOutput
from wound_intake.domain.agents.wound_imaging_agent import (
    WoundImagingAgent,
    WoundImagingInput,
    WoundImagingOutput,
)

__all__ = [
    "Agent",
    "AgentDependencies",
    "AgentFactory",
    "AgentResult",
    "AgentRunContext",
    "BioAgent",
    "BioAgentInput",
    "BioAgentOutput",
    "SourceInfo",
    "compute_missing_fields",
    "DataStewardAgent",
    "DataStewardInput",
    "DataStewardOutput",
    "ExportAgent",
    "ExportAgentInput",
    "ExportAgentOutput",
    "FollowupAgent",
    "FollowupAgentInput",
    "FollowupAgentOutput",
    "DirectInput",
    "InputRouter",
    "InputRouterInput",
    "InputRouterOutput",
    "OcrAsrAgent",
    "OcrAsrInput",
    "OcrAsrOutput",
    "SecurityAgent",
    "SecurityAgentInput",
    "SecurityAgentOutput",
    "TimeAgent",
    "TimeAgentInput",
    "TimeAgentOutput",
    "VitalsAgent",
    "VitalsAgentInput",
    "VitalsAgentOutput",
    "WoundImagingAgent",
    "WoundImagingInput",
    "WoundImagingOutput",
]
