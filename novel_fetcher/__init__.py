"""Download serialized novels from a grouped source list."""

from .config import GlobalConfig, HttpClientConfig
from .orchestrator import Orchestrator, RunSummary, UnitProcessor, UnitResult

__version__ = "0.1.0"

__all__ = [
    "GlobalConfig",
    "HttpClientConfig",
    "Orchestrator",
    "RunSummary",
    "UnitProcessor",
    "UnitResult",
    "__version__",
]
