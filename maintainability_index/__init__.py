"""
Repository Maintainability Index.

Scores a GitHub repository on code quality, documentation, activity and
community health, and combines them into one weighted index.
"""

__version__ = "0.1.0"

from maintainability_index.config import AnalysisConfig, load_config  # noqa: E402
from maintainability_index.core import analyze_repository  # noqa: E402
from maintainability_index.models import RepositoryIdentifier  # noqa: E402
from maintainability_index.report import CompositeReport  # noqa: E402

__all__ = [
    "__version__",
    "AnalysisConfig",
    "CompositeReport",
    "RepositoryIdentifier",
    "analyze_repository",
    "load_config",
]
