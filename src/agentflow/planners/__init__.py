"""Planners that shape how an agent reasons across steps."""

from agentflow.planners.base import BasePlanner
from agentflow.planners.plan_react import PlanReActPlanner

__all__ = ["BasePlanner", "PlanReActPlanner"]
