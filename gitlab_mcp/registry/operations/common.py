"""Shared field types and annotations for GitLab operation registrations."""

from typing import Annotated, Any, Dict, Optional, Union

from pydantic import BaseModel, Field

ProjectId = Annotated[
    Union[int, str],
    Field(description="Project ID or URL-encoded path (e.g. 'group/project')"),
]

READ_ONLY: Dict[str, Any] = {"readOnlyHint": True, "destructiveHint": False}
WRITE: Dict[str, Any] = {"readOnlyHint": False, "destructiveHint": False}
DESTRUCTIVE: Dict[str, Any] = {"readOnlyHint": False, "destructiveHint": True}


class PageArgs(BaseModel):
    """Pagination parameters accepted by GitLab list endpoints."""
    page: Optional[int] = Field(None, ge=1, description="Page number")
    per_page: Optional[int] = Field(None, ge=1, le=100, description="Results per page")


def query_params(args: BaseModel, *exclude: str) -> Dict[str, Any]:
    """Dump set fields of ``args`` as query or body parameters, keyed by alias."""
    return args.model_dump(exclude=set(exclude), exclude_none=True, by_alias=True)
