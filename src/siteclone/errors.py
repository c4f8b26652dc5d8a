"""Errors raised by the clone engine.

Every error derives from SiteCloneError and carries a `context` dict naming the
site, environment, element or path involved so the CLI can report it as is.
"""


class SiteCloneError(Exception):
    """Base exception for all siteclone errors."""

    def __init__(
        self,
        message: str = "",
        *,
        retryable: bool = False,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.context = dict(context or {})


class ValidationError(SiteCloneError):
    """Missing or conflicting input detected before any mutation."""


class PrerequisiteError(SiteCloneError):
    """A required external tool is not available."""


class ConfigError(SiteCloneError):
    """Invalid or missing configuration."""


class BackupError(SiteCloneError):
    """A remediation backup could not be created."""


class GitOperationError(SiteCloneError):
    """A git step exited non-zero. The working copy is not safe to retry."""


class ContentImportError(SiteCloneError):
    """Content for one environment could not be imported."""


class PlatformError(SiteCloneError):
    """A platform query or workflow failed."""


class DeployError(PlatformError):
    """Deploying code to an environment failed."""


class TransformError(SiteCloneError):
    """A registered transform hook raised."""
