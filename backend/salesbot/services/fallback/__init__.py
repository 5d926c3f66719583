from salesbot.services.fallback.resolver import FallbackResolver
from salesbot.services.fallback.stages import (
    DelegateStage,
    GenericStage,
    KeywordStage,
    NoProductsStage,
    ResolutionStage,
    SemanticStage,
)
from salesbot.services.fallback.state import ResolutionState, StageResult

__all__ = [
    "FallbackResolver",
    "ResolutionStage",
    "DelegateStage",
    "SemanticStage",
    "KeywordStage",
    "GenericStage",
    "NoProductsStage",
    "ResolutionState",
    "StageResult",
]
