"""Wound Intake: session orchestration engine for guided clinical wound intake."""

__version__ = "1.0.0"
