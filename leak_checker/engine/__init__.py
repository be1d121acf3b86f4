"""Engine components orchestrating enumerate → fetch → ingest."""

from .fetcher import RangeFetcher, RangeResponse
from .ingester import IngestResult, ResponseIngester, parse_line
from .range_space import RangeSpace
from .thread_pool import WorkerPool

__all__ = [
    "IngestResult",
    "RangeFetcher",
    "RangeResponse",
    "RangeSpace",
    "ResponseIngester",
    "WorkerPool",
    "parse_line",
]
