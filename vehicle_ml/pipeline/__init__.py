"""
Pipeline Module — Orchestration and Result Types

Public API:
- PipelineOrchestrator: initialize / training / real-time / anomaly modes
- PipelineState: Uninitialized -> Initialized -> Ready
- TrainingDataset, TrainingMetadata, RealtimeFeatures: Mode outputs
"""

from .orchestrator import PipelineOrchestrator
from .schemas import PipelineState, RealtimeFeatures, TrainingDataset, TrainingMetadata

__all__ = [
    "PipelineOrchestrator",
    "PipelineState",
    "RealtimeFeatures",
    "TrainingDataset",
    "TrainingMetadata",
]
