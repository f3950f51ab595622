"""
Run Control - Gherkin/Playwright test run coordinator

Queues generated Gherkin features, executes them one at a time (simulated
playback or a real backend run), streams their output and keeps run history
with downloadable artifacts.
"""

__version__ = "0.1.0"
__author__ = "Run Control Team"

from .core.config import Config
from .core.exceptions import RunControlError
from .core.logging_config import setup_logging
from .execution.coordinator import RunCoordinator
from .library import EnvironmentStore, FeatureLibrary

__all__ = [
    "Config",
    "RunControlError",
    "setup_logging",
    "RunCoordinator",
    "EnvironmentStore",
    "FeatureLibrary",
]
