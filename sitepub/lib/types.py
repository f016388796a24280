"""
Result values returned by the deployment core.

These are the shapes callers (CLI, HTTP layer) see. Field names are
snake_case in Python and camelCase on the wire via to_dict().
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_dict(self) -> dict:
        """Wire representation: camelCase keys, unset optionals omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class DeploymentStatus(_WireModel):
    """Is the repository ahead of its last published tag?"""
    current_tag: str | None = None
    has_unpublished_changes: bool
    message: str


class OperationResult(_WireModel):
    """Terminal outcome of a mutating operation."""
    success: bool
    message: str
    stage: str | None = None  # Failing stage, only set on failure
    tag: str | None = None

    @classmethod
    def ok(cls, message: str, **kwargs):
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def failed(cls, message: str, stage: str | None = None):
        return cls(success=False, message=message, stage=stage)


class PublishResult(OperationResult):
    pass


class RollbackResult(OperationResult):
    pass


class PreviewResult(OperationResult):
    url: str | None = None


class PreviewStatus(_WireModel):
    is_running: bool
    url: str | None = None
    port: int | None = None


class TagList(_WireModel):
    """Published tags, newest first, plus which lookup tier produced them."""
    tags: list[str]
    source: str
    message: str | None = None
