"""Process-local caches used by the planner stores."""

from .plan_cache import PlanCache, plan_cache

__all__ = ["PlanCache", "plan_cache"]
