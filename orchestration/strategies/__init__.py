"""Chain execution strategies"""
from .chain import ChainStrategy, step_confidence
from .parallel import ParallelStrategy
from .catalog import ChainCatalog

__all__ = [
    "ChainStrategy",
    "ParallelStrategy",
    "ChainCatalog",
    "step_confidence",
]
