"""
GitLab search operation registrations.

Instance-wide, group and project search over the GitLab search API. The
blobs, commits, notes and wiki_blobs scopes need Premium or Ultimate.
"""

import logging
from typing import Any, Dict, Literal, Optional, Union

from pydantic import Field

from ...utils.gitlab_client import GitLabClient, encode_project_id
from ...utils.response import json_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import READ_ONLY, PageArgs, ProjectId, query_params

logger = logging.getLogger(__name__)

SearchScope = Literal[
    "projects", "issues", "merge_requests", "milestones", "snippet_titles",
    "users", "wiki_blobs", "commits", "blobs", "notes",
]


class SearchArgs(PageArgs):
    scope: SearchScope = Field(description="What to search for")
    search: str = Field(min_length=1, description="Search query")
    state: Optional[Literal["opened", "closed", "merged", "all"]] = Field(
        None, description="State filter (issues and merge_requests only)"
    )
    confidential: Optional[bool] = Field(None, description="Confidentiality filter (issues only)")
    order_by: Optional[Literal["created_at"]] = Field(None, description="Order results by")
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction")


class GroupSearchArgs(SearchArgs):
    group_id: Union[int, str] = Field(description="Group ID or URL-encoded path")


class ProjectSearchArgs(SearchArgs):
    project_id: ProjectId
    ref: str = Field("", description="Branch or tag to search (blobs and commits only)")


def register_search_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register search operations through ``target``."""

    async def global_search(params: Dict[str, Any]):
        args = SearchArgs.model_validate(params)
        results = await client.get("/search", query_params(args))
        return json_result(results)

    async def group_search(params: Dict[str, Any]):
        args = GroupSearchArgs.model_validate(params)
        group = encode_project_id(args.group_id)
        results = await client.get(f"/groups/{group}/search", query_params(args, "group_id"))
        return json_result(results)

    async def project_search(params: Dict[str, Any]):
        args = ProjectSearchArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        query = query_params(args, "project_id")
        if not query.get("ref"):
            query.pop("ref", None)
        results = await client.get(f"/projects/{project}/search", query)
        return json_result(results)

    target.register_tool(
        "global_search",
        ToolConfig(
            title="Global Search",
            description="Search across the entire GitLab instance within a scope",
            input_schema=SearchArgs,
            annotations=READ_ONLY,
        ),
        global_search,
    )
    target.register_tool(
        "group_search",
        ToolConfig(
            title="Group Search",
            description="Search within a GitLab group and its projects",
            input_schema=GroupSearchArgs,
            annotations=READ_ONLY,
        ),
        group_search,
    )
    target.register_tool(
        "project_search",
        ToolConfig(
            title="Project Search",
            description="Search within a single GitLab project",
            input_schema=ProjectSearchArgs,
            annotations=READ_ONLY,
        ),
        project_search,
    )

    logger.debug("Search operations registered")
