# Rev 0.3.0
"""zenboard: personal planner core (projects, tasks, subtasks, calendar, time tracking)."""

__version__ = "0.3.0"
