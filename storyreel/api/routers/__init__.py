"""API routers for Storyreel."""

from storyreel.api.routers import history, pipelines, projects

__all__ = ["history", "pipelines", "projects"]
