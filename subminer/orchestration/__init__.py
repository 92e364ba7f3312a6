"""Orchestration of the Anki integration session."""

from .anki_integration import AnkiIntegration
from .operation_gate import EngineState, OperationGate

__all__ = ["AnkiIntegration", "EngineState", "OperationGate"]
