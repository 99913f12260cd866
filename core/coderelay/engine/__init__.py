"""Engine module - streaming interpretation, extraction and application of code recommendations."""

from coderelay.engine.executor import APPLY_ALL, ApplicationExecutor
from coderelay.engine.extractor import RecommendationExtractor, extract_recommendations
from coderelay.engine.interpreter import ToolCallInterpreter
from coderelay.engine.session import ChatSession
from coderelay.engine.store import RecommendationStore, new_request_id

__all__ = [
    "APPLY_ALL",
    "ApplicationExecutor",
    "ChatSession",
    "RecommendationExtractor",
    "RecommendationStore",
    "ToolCallInterpreter",
    "extract_recommendations",
    "new_request_id",
]
