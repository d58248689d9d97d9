"""Clients and contracts for the external analysis backend."""

from photo_culling.service.analysis import (
    AnalysisRequest,
    AnalysisService,
    AnalysisStream,
    HttpAnalysisService,
    ProgressEvent,
)
from photo_culling.service.client import BatchMode, CullingServiceClient
from photo_culling.service.culling import ScoreCullingService

__all__ = [
    "AnalysisRequest",
    "AnalysisService",
    "AnalysisStream",
    "BatchMode",
    "CullingServiceClient",
    "HttpAnalysisService",
    "ProgressEvent",
    "ScoreCullingService",
]
