"""
Storyreel Custom Exceptions

Custom exception classes for error handling throughout the Storyreel pipeline.
"""

from typing import Optional


class StoryreelError(Exception):
    """Base exception for all Storyreel errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(StoryreelError):
    """Raised when there's an issue with configuration."""
    pass


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration is missing."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""
    pass


# =============================================================================
# LLM ERRORS
# =============================================================================

class LLMError(StoryreelError):
    """Base exception for LLM-related errors."""
    pass


class LLMRequestError(LLMError):
    """Raised when the LLM endpoint answers with a non-2xx status or is unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        details = {"status_code": status_code} if status_code is not None else {}
        super().__init__(message, details)
        self.status_code = status_code

    def __str__(self):
        return self.message


class MissingAPIKeyError(LLMRequestError):
    """Raised when no API key is configured."""

    def __init__(self, message: str = "Please add your Anthropic API key in settings"):
        super().__init__(message, status_code=400)


class LLMResponseError(LLMError):
    """Raised when model output lacks the expected markers or JSON."""
    pass


# =============================================================================
# PIPELINE ERRORS
# =============================================================================

class PipelineError(StoryreelError):
    """Base exception for pipeline errors."""
    pass


class PipelineStageError(PipelineError):
    """Raised when a specific pipeline stage fails."""

    def __init__(self, stage_name: str, reason: str):
        message = f"Pipeline stage '{stage_name}' failed: {reason}"
        super().__init__(message, {"stage": stage_name, "reason": reason})
        self.stage_name = stage_name
        self.reason = reason


class PrerequisiteError(PipelineError):
    """Raised when a stage is triggered before its inputs exist."""
    pass


# =============================================================================
# PROJECT ERRORS
# =============================================================================

class ProjectError(StoryreelError):
    """Base exception for project persistence errors."""
    pass


class ProjectNotFoundError(ProjectError):
    """Raised when a project is not found."""

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: '{project_id}'", {"project_id": project_id})
        self.project_id = project_id


class PersistenceError(ProjectError):
    """Raised when the project store cannot read or write."""
    pass


class SnapshotFormatError(ProjectError):
    """Raised when an imported snapshot is not a valid project file."""
    pass
