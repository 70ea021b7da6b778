__all__ = [
    "LoadRunner",
    "LoadConfig",
    "ConfigurationError",
    "ConcurrencyProfile",
    "RampScheduler",
    "FlowSelector",
    "WorkerPool",
    "ProcessRunner",
    "StreamProtocolParser",
    "StatsAggregator",
    "Summary",
]


from .config import ConfigurationError, LoadConfig
from .core import LoadRunner
from .flows import FlowSelector
from .models import Summary
from .pool import WorkerPool
from .protocol import StreamProtocolParser
from .ramp import ConcurrencyProfile, RampScheduler
from .runner import ProcessRunner
from .stats import StatsAggregator
