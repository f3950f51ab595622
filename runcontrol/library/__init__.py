"""Feature library and environment store."""

from .environments import EnvironmentStore
from .features import FeatureLibrary, SourceFile, parse_steps_files

__all__ = [
    "EnvironmentStore",
    "FeatureLibrary",
    "SourceFile",
    "parse_steps_files",
]
