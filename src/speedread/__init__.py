from .errors import (
    Cancelled,
    ExtractionError,
    ExtractionFailure,
    InvalidInput,
    NetworkFailure,
    UpstreamFetchFailure,
)
from .extraction import ArticleExtractor, ExtractionResult
from .orp import OrpSlices, split_orp
from .scheduler import PlaybackConfig, PlaybackScheduler, PlaybackState
from .tokenizer import tokenize

__all__ = [
    "tokenize",
    "split_orp",
    "OrpSlices",
    "PlaybackConfig",
    "PlaybackScheduler",
    "PlaybackState",
    "ArticleExtractor",
    "ExtractionResult",
    "ExtractionError",
    "InvalidInput",
    "UpstreamFetchFailure",
    "NetworkFailure",
    "ExtractionFailure",
    "Cancelled",
]
