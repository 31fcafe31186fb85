"""Unibuild: multi-project build orchestration.

Projects are extracted and built once per content fingerprint; composite
``assemble`` projects merge independently built parts into a single,
consistently named artifact set.
"""

__version__ = "0.1.0"
__description__ = "Multi-project build orchestration with fingerprint caching and assembly"

from unibuild.core.orchestrator import Orchestrator
from unibuild.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
