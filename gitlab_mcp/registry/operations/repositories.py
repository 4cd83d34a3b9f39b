"""
Repository operation registrations.

Covers project search, file reads and commits, repository creation, forks,
branches, branch comparison and the repository tree.
"""

import base64
import logging
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabAPIError, GitLabClient, encode_project_id
from ...utils.response import json_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import DESTRUCTIVE, READ_ONLY, WRITE, PageArgs, ProjectId, query_params

logger = logging.getLogger(__name__)


# ============================================================================
# Input Schemas
# ============================================================================

class SearchRepositoriesArgs(PageArgs):
    search: str = Field(min_length=1, description="Search query")


class GetFileContentsArgs(BaseModel):
    project_id: ProjectId
    file_path: str = Field(min_length=1, description="Path to the file or directory")
    ref: Optional[str] = Field(None, description="Branch, tag or commit (defaults to the default branch)")


class CreateRepositoryArgs(BaseModel):
    name: str = Field(min_length=1, description="Repository name")
    description: Optional[str] = Field(None, description="Repository description")
    visibility: Optional[Literal["private", "internal", "public"]] = Field(
        None, description="Repository visibility"
    )
    initialize_with_readme: Optional[bool] = Field(None, description="Create an initial README")
    namespace_id: Optional[int] = Field(None, description="Namespace to create the repository in")


class ForkRepositoryArgs(BaseModel):
    project_id: ProjectId
    namespace: Optional[str] = Field(None, description="Namespace to fork into")


class CreateBranchArgs(BaseModel):
    project_id: ProjectId
    branch: str = Field(min_length=1, description="Name of the new branch")
    ref: Optional[str] = Field(None, description="Source branch or commit (defaults to the default branch)")


class GetRepositoryTreeArgs(PageArgs):
    project_id: ProjectId
    path: Optional[str] = Field(None, description="Path inside the repository")
    ref: Optional[str] = Field(None, description="Branch, tag or commit")
    recursive: bool = Field(False, description="List the tree recursively")


class CreateOrUpdateFileArgs(BaseModel):
    project_id: ProjectId
    file_path: str = Field(min_length=1, description="Path of the file to write")
    branch: str = Field(min_length=1, description="Branch to commit to")
    content: str = Field(description="New file content")
    commit_message: str = Field(min_length=1, description="Commit message")
    author_email: Optional[str] = Field(None, description="Commit author email")
    author_name: Optional[str] = Field(None, description="Commit author name")


class FileAction(BaseModel):
    file_path: str = Field(min_length=1, description="Path of the file")
    content: str = Field("", description="File content (ignored for delete)")
    action: Literal["create", "update", "delete"] = Field("create", description="Commit action")


class PushFilesArgs(BaseModel):
    project_id: ProjectId
    branch: str = Field(min_length=1, description="Branch to commit to")
    commit_message: str = Field(min_length=1, description="Commit message")
    files: List[FileAction] = Field(min_length=1, description="Files to commit")
    start_branch: Optional[str] = Field(None, description="Branch to start from when creating `branch`")


class GetBranchDiffsArgs(BaseModel):
    project_id: ProjectId
    from_ref: str = Field(alias="from", min_length=1, description="Source branch or commit")
    to: str = Field(min_length=1, description="Target branch or commit")
    straight: Optional[bool] = Field(None, description="Compare directly instead of from the merge base")


# ============================================================================
# Helpers
# ============================================================================

def decode_file_content(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode base64 file content returned by the files endpoint.

    Directory listings (lists) pass through unchanged.
    """
    if not isinstance(payload, dict) or payload.get("encoding") != "base64":
        return payload

    decoded = dict(payload)
    try:
        decoded["content"] = base64.b64decode(payload.get("content", "")).decode("utf-8")
        decoded["encoding"] = "text"
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"Keeping base64 content for {payload.get('file_path')}: {e}")
        return payload
    return decoded


# ============================================================================
# Registration Function
# ============================================================================

def register_repository_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register repository operations through ``target``."""

    async def search_repositories(params: Dict[str, Any]):
        args = SearchRepositoriesArgs.model_validate(params)
        projects = await client.get("/projects", query_params(args))
        return json_result(projects)

    async def get_file_contents(params: Dict[str, Any]):
        args = GetFileContentsArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        file_path = quote(args.file_path, safe="")
        query = {"ref": args.ref or "HEAD"}
        payload = await client.get(f"/projects/{project}/repository/files/{file_path}", query)
        return json_result(decode_file_content(payload))

    async def create_repository(params: Dict[str, Any]):
        args = CreateRepositoryArgs.model_validate(params)
        project = await client.post("/projects", query_params(args))
        return json_result(project)

    async def fork_repository(params: Dict[str, Any]):
        args = ForkRepositoryArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        fork = await client.post(f"/projects/{project}/fork", query_params(args, "project_id"))
        return json_result(fork)

    async def create_branch(params: Dict[str, Any]):
        args = CreateBranchArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        ref = args.ref
        if not ref:
            details = await client.get(f"/projects/{project}")
            ref = details.get("default_branch") or "main"
        branch = await client.post(
            f"/projects/{project}/repository/branches",
            {"branch": args.branch, "ref": ref},
        )
        return json_result(branch)

    async def get_repository_tree(params: Dict[str, Any]):
        args = GetRepositoryTreeArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        tree = await client.get(
            f"/projects/{project}/repository/tree",
            query_params(args, "project_id"),
        )
        return json_result(tree)

    async def create_or_update_file(params: Dict[str, Any]):
        args = CreateOrUpdateFileArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        endpoint = f"/projects/{project}/repository/files/{quote(args.file_path, safe='')}"

        # POST creates and PUT updates, so look the file up on the branch first
        try:
            await client.get(endpoint, {"ref": args.branch})
            exists = True
        except GitLabAPIError as e:
            if e.status_code != 404:
                raise
            exists = False

        body = query_params(args, "project_id", "file_path", "content")
        body["content"] = base64.b64encode(args.content.encode("utf-8")).decode("ascii")
        body["encoding"] = "base64"
        if exists:
            result = await client.put(endpoint, body)
        else:
            result = await client.post(endpoint, body)
        return json_result(result)

    async def push_files(params: Dict[str, Any]):
        args = PushFilesArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        body = query_params(args, "project_id", "files")
        body["actions"] = [f.model_dump() for f in args.files]
        commit = await client.post(f"/projects/{project}/repository/commits", body)
        return json_result(commit)

    async def get_branch_diffs(params: Dict[str, Any]):
        args = GetBranchDiffsArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        diffs = await client.get(
            f"/projects/{project}/repository/compare",
            query_params(args, "project_id"),
        )
        return json_result(diffs)

    target.register_tool(
        "search_repositories",
        ToolConfig(
            title="Search Repositories",
            description="Search for GitLab projects by name",
            input_schema=SearchRepositoriesArgs,
            annotations=READ_ONLY,
        ),
        search_repositories,
    )
    target.register_tool(
        "get_file_contents",
        ToolConfig(
            title="Get File Contents",
            description="Get the contents of a file from a GitLab project",
            input_schema=GetFileContentsArgs,
            annotations=READ_ONLY,
        ),
        get_file_contents,
    )
    target.register_tool(
        "create_repository",
        ToolConfig(
            title="Create Repository",
            description="Create a new GitLab project",
            input_schema=CreateRepositoryArgs,
            annotations=WRITE,
        ),
        create_repository,
    )
    target.register_tool(
        "fork_repository",
        ToolConfig(
            title="Fork Repository",
            description="Fork a GitLab project to your account or a namespace",
            input_schema=ForkRepositoryArgs,
            annotations=WRITE,
        ),
        fork_repository,
    )
    target.register_tool(
        "create_branch",
        ToolConfig(
            title="Create Branch",
            description="Create a new branch in a GitLab project",
            input_schema=CreateBranchArgs,
            annotations=WRITE,
        ),
        create_branch,
    )
    target.register_tool(
        "get_repository_tree",
        ToolConfig(
            title="Get Repository Tree",
            description="List files and directories in a GitLab project",
            input_schema=GetRepositoryTreeArgs,
            annotations=READ_ONLY,
        ),
        get_repository_tree,
    )
    target.register_tool(
        "create_or_update_file",
        ToolConfig(
            title="Create or Update File",
            description="Create or update a single file in a GitLab project",
            input_schema=CreateOrUpdateFileArgs,
            annotations=DESTRUCTIVE,
        ),
        create_or_update_file,
    )
    target.register_tool(
        "push_files",
        ToolConfig(
            title="Push Files",
            description="Push multiple files to a GitLab project in a single commit",
            input_schema=PushFilesArgs,
            annotations=DESTRUCTIVE,
        ),
        push_files,
    )
    target.register_tool(
        "get_branch_diffs",
        ToolConfig(
            title="Get Branch Diffs",
            description="Get the changes between two branches or commits in a GitLab project",
            input_schema=GetBranchDiffsArgs,
            annotations=READ_ONLY,
        ),
        get_branch_diffs,
    )

    logger.debug("Repository operations registered")
