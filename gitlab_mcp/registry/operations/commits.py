"""Commit operation registrations."""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabClient, encode_project_id
from ...utils.response import json_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import READ_ONLY, PageArgs, ProjectId, query_params

logger = logging.getLogger(__name__)


class ListCommitsArgs(PageArgs):
    project_id: ProjectId
    ref_name: Optional[str] = Field(None, description="Branch, tag or revision range")
    since: Optional[str] = Field(None, description="Only commits after this ISO 8601 date")
    until: Optional[str] = Field(None, description="Only commits before this ISO 8601 date")
    path: Optional[str] = Field(None, description="Only commits touching this file path")
    author: Optional[str] = Field(None, description="Filter by commit author")
    with_stats: Optional[bool] = Field(None, description="Include commit stats")


class CommitRefArgs(BaseModel):
    project_id: ProjectId
    sha: str = Field(min_length=1, description="Commit hash or branch/tag name")


class GetCommitArgs(CommitRefArgs):
    stats: Optional[bool] = Field(None, description="Include commit stats")


def register_commit_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register commit operations through ``target``."""

    async def list_commits(params: Dict[str, Any]):
        args = ListCommitsArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        commits = await client.get(
            f"/projects/{project}/repository/commits",
            query_params(args, "project_id"),
        )
        return json_result(commits)

    async def get_commit(params: Dict[str, Any]):
        args = GetCommitArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        commit = await client.get(
            f"/projects/{project}/repository/commits/{encode_project_id(args.sha)}",
            query_params(args, "project_id", "sha"),
        )
        return json_result(commit)

    async def get_commit_diff(params: Dict[str, Any]):
        args = CommitRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        diff = await client.get(
            f"/projects/{project}/repository/commits/{encode_project_id(args.sha)}/diff"
        )
        return json_result(diff)

    target.register_tool(
        "list_commits",
        ToolConfig(
            title="List Commits",
            description="List repository commits with filtering options",
            input_schema=ListCommitsArgs,
            annotations=READ_ONLY,
        ),
        list_commits,
    )
    target.register_tool(
        "get_commit",
        ToolConfig(
            title="Get Commit",
            description="Get details of a specific commit",
            input_schema=GetCommitArgs,
            annotations=READ_ONLY,
        ),
        get_commit,
    )
    target.register_tool(
        "get_commit_diff",
        ToolConfig(
            title="Get Commit Diff",
            description="Get the changes introduced by a specific commit",
            input_schema=CommitRefArgs,
            annotations=READ_ONLY,
        ),
        get_commit_diff,
    )

    logger.debug("Commit operations registered")
