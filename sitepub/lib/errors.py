"""
Error taxonomy for sitepub.

Public service operations catch SitepubError and report
{success: false, stage, message}. ConfigurationError is the exception:
it is raised at startup because the service cannot run at all.
"""


class SitepubError(Exception):
    """Base class for all sitepub errors.

    Args:
        message: Human-readable description
        stage: Pipeline stage that failed (fetch, build, deploy, tag, ...)
    """

    def __init__(self, message: str, stage: str | None = None):
        self.stage = stage
        super().__init__(message)


class ConfigurationError(SitepubError):
    """Missing or invalid configuration. Fatal at startup, never retried."""


class RepositoryStateError(SitepubError):
    """Local repository is absent or not initialised."""


class NetworkOperationError(SitepubError):
    """A git operation (fetch, push, clone, ls-remote) failed."""


class BuildError(SitepubError):
    """The external site build failed or produced no output."""


class ContentProcessingError(SitepubError):
    """The external content processing step failed."""


class ConflictError(SitepubError):
    """Operation conflicts with current state (preview running, unknown tag)."""


class MalformedTagError(SitepubError):
    """A tag does not match vMAJOR.MINOR.PATCH."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Tag '{tag}' does not match vMAJOR.MINOR.PATCH", stage="tag")
