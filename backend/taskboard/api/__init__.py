# Taskboard API
from taskboard.api.router import api_router

__all__ = ["api_router"]
