"""Session-scoped repositories for the database-backed stores."""

from .progress import ProgressRepository, progress_repository
from .study_plans import StudyPlanRepository, study_plans

__all__ = ["ProgressRepository", "StudyPlanRepository", "progress_repository", "study_plans"]
