"""
Merge request operation registrations.

Covers merge request lifecycle, diffs, notes and discussion threads.
"""

import logging
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabClient, encode_project_id
from ...utils.response import json_result, text_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import DESTRUCTIVE, READ_ONLY, WRITE, PageArgs, ProjectId, query_params

logger = logging.getLogger(__name__)


class ListMergeRequestsArgs(PageArgs):
    project_id: ProjectId
    state: Optional[Literal["opened", "closed", "locked", "merged", "all"]] = Field(
        None, description="Merge request state filter"
    )
    scope: Optional[Literal["created_by_me", "assigned_to_me", "all"]] = Field(
        None, description="Scope filter"
    )
    source_branch: Optional[str] = Field(None, description="Source branch filter")
    target_branch: Optional[str] = Field(None, description="Target branch filter")
    labels: Optional[str] = Field(None, description="Comma-separated labels filter")


class GetMergeRequestArgs(BaseModel):
    project_id: ProjectId
    merge_request_iid: Optional[int] = Field(None, ge=1, description="Merge request IID")
    source_branch: Optional[str] = Field(
        None, description="Source branch name (used when merge_request_iid is omitted)"
    )


class MergeRequestRefArgs(BaseModel):
    project_id: ProjectId
    merge_request_iid: int = Field(ge=1, description="Merge request IID")


class CreateMergeRequestArgs(BaseModel):
    project_id: ProjectId
    source_branch: str = Field(description="Branch containing the changes")
    target_branch: str = Field(description="Branch to merge into")
    title: str = Field(min_length=1, description="Merge request title")
    description: Optional[str] = Field(None, description="Merge request description")
    labels: Optional[str] = Field(None, description="Comma-separated labels")
    draft: Optional[bool] = Field(None, description="Create as draft")
    remove_source_branch: Optional[bool] = Field(None, description="Remove source branch after merge")
    squash: Optional[bool] = Field(None, description="Squash commits on merge")


class UpdateMergeRequestArgs(MergeRequestRefArgs):
    title: Optional[str] = Field(None, description="New title")
    description: Optional[str] = Field(None, description="New description")
    target_branch: Optional[str] = Field(None, description="New target branch")
    labels: Optional[str] = Field(None, description="Comma-separated labels")
    state_event: Optional[Literal["close", "reopen"]] = Field(None, description="State change")


class MergeMergeRequestArgs(MergeRequestRefArgs):
    merge_commit_message: Optional[str] = Field(None, description="Custom merge commit message")
    squash: Optional[bool] = Field(None, description="Squash commits on merge")
    should_remove_source_branch: Optional[bool] = Field(None, description="Remove source branch")
    merge_when_pipeline_succeeds: Optional[bool] = Field(
        None, description="Merge once the pipeline succeeds"
    )


class MergeRequestPageArgs(MergeRequestRefArgs, PageArgs):
    pass


class DiffPosition(BaseModel):
    """Anchors a thread to a line of the merge request diff."""
    base_sha: str = Field(description="Base commit SHA of the diff")
    start_sha: str = Field(description="Start commit SHA of the diff")
    head_sha: str = Field(description="Head commit SHA of the diff")
    position_type: Literal["text", "image"] = Field("text", description="Position type")
    new_path: Optional[str] = Field(None, description="File path after the change")
    old_path: Optional[str] = Field(None, description="File path before the change")
    new_line: Optional[int] = Field(None, description="Line number after the change")
    old_line: Optional[int] = Field(None, description="Line number before the change")


class CreateThreadArgs(MergeRequestRefArgs):
    body: str = Field(min_length=1, description="Thread body")
    position: Optional[DiffPosition] = Field(None, description="Diff position for a line comment")


class ResolveThreadArgs(MergeRequestRefArgs):
    discussion_id: str = Field(min_length=1, description="Discussion ID")
    resolved: bool = Field(True, description="Resolve (true) or unresolve (false)")


class CreateNoteArgs(MergeRequestRefArgs):
    body: str = Field(min_length=1, description="Note body")


class NoteRefArgs(MergeRequestRefArgs):
    note_id: int = Field(ge=1, description="Note ID")


class UpdateNoteArgs(NoteRefArgs):
    body: str = Field(min_length=1, description="New note body")


def register_merge_request_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register merge request operations through ``target``."""

    async def list_merge_requests(params: Dict[str, Any]):
        args = ListMergeRequestsArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        mrs = await client.get(f"/projects/{project}/merge_requests", query_params(args, "project_id"))
        return json_result(mrs)

    async def get_merge_request(params: Dict[str, Any]):
        args = GetMergeRequestArgs.model_validate(params)
        project = encode_project_id(args.project_id)

        if args.merge_request_iid is not None:
            mr = await client.get(f"/projects/{project}/merge_requests/{args.merge_request_iid}")
            return json_result(mr)

        if not args.source_branch:
            raise ValueError("Either merge_request_iid or source_branch must be provided")

        mrs = await client.get(
            f"/projects/{project}/merge_requests",
            {"source_branch": args.source_branch},
        )
        if not mrs:
            raise ValueError(f"No merge request found for source branch '{args.source_branch}'")
        return json_result(mrs[0])

    async def create_merge_request(params: Dict[str, Any]):
        args = CreateMergeRequestArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        mr = await client.post(f"/projects/{project}/merge_requests", query_params(args, "project_id"))
        return json_result(mr)

    async def update_merge_request(params: Dict[str, Any]):
        args = UpdateMergeRequestArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        mr = await client.put(
            f"/projects/{project}/merge_requests/{args.merge_request_iid}",
            query_params(args, "project_id", "merge_request_iid"),
        )
        return json_result(mr)

    async def merge_merge_request(params: Dict[str, Any]):
        args = MergeMergeRequestArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        mr = await client.put(
            f"/projects/{project}/merge_requests/{args.merge_request_iid}/merge",
            query_params(args, "project_id", "merge_request_iid"),
        )
        return json_result(mr)

    async def get_merge_request_diffs(params: Dict[str, Any]):
        args = MergeRequestPageArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        diffs = await client.get(
            f"/projects/{project}/merge_requests/{args.merge_request_iid}/diffs",
            query_params(args, "project_id", "merge_request_iid"),
        )
        return json_result(diffs)

    def mr_path(args: MergeRequestRefArgs) -> str:
        return f"/projects/{encode_project_id(args.project_id)}/merge_requests/{args.merge_request_iid}"

    async def mr_discussions(params: Dict[str, Any]):
        args = MergeRequestPageArgs.model_validate(params)
        discussions = await client.get(
            f"{mr_path(args)}/discussions",
            query_params(args, "project_id", "merge_request_iid"),
        )
        return json_result(discussions)

    async def create_merge_request_thread(params: Dict[str, Any]):
        args = CreateThreadArgs.model_validate(params)
        thread = await client.post(
            f"{mr_path(args)}/discussions",
            query_params(args, "project_id", "merge_request_iid"),
        )
        return json_result(thread)

    async def resolve_merge_request_thread(params: Dict[str, Any]):
        args = ResolveThreadArgs.model_validate(params)
        thread = await client.put(
            f"{mr_path(args)}/discussions/{args.discussion_id}",
            {"resolved": args.resolved},
        )
        return json_result(thread)

    async def create_merge_request_note(params: Dict[str, Any]):
        args = CreateNoteArgs.model_validate(params)
        note = await client.post(f"{mr_path(args)}/notes", {"body": args.body})
        return json_result(note)

    async def get_merge_request_notes(params: Dict[str, Any]):
        args = MergeRequestPageArgs.model_validate(params)
        notes = await client.get(
            f"{mr_path(args)}/notes",
            query_params(args, "project_id", "merge_request_iid"),
        )
        return json_result(notes)

    async def update_merge_request_note(params: Dict[str, Any]):
        args = UpdateNoteArgs.model_validate(params)
        note = await client.put(f"{mr_path(args)}/notes/{args.note_id}", {"body": args.body})
        return json_result(note)

    async def delete_merge_request_note(params: Dict[str, Any]):
        args = NoteRefArgs.model_validate(params)
        await client.delete(f"{mr_path(args)}/notes/{args.note_id}")
        return text_result("Note deleted successfully")

    target.register_tool(
        "list_merge_requests",
        ToolConfig(
            title="List Merge Requests",
            description="List merge requests in a GitLab project with filtering options",
            input_schema=ListMergeRequestsArgs,
            annotations=READ_ONLY,
        ),
        list_merge_requests,
    )
    target.register_tool(
        "get_merge_request",
        ToolConfig(
            title="Get Merge Request",
            description="Get details of a merge request by IID or source branch",
            input_schema=GetMergeRequestArgs,
            annotations=READ_ONLY,
        ),
        get_merge_request,
    )
    target.register_tool(
        "create_merge_request",
        ToolConfig(
            title="Create Merge Request",
            description="Create a new merge request in a GitLab project",
            input_schema=CreateMergeRequestArgs,
            annotations=WRITE,
        ),
        create_merge_request,
    )
    target.register_tool(
        "update_merge_request",
        ToolConfig(
            title="Update Merge Request",
            description="Update a merge request's title, description, target branch or state",
            input_schema=UpdateMergeRequestArgs,
            annotations=DESTRUCTIVE,
        ),
        update_merge_request,
    )
    target.register_tool(
        "merge_merge_request",
        ToolConfig(
            title="Merge Merge Request",
            description="Merge a merge request into its target branch",
            input_schema=MergeMergeRequestArgs,
            annotations=DESTRUCTIVE,
        ),
        merge_merge_request,
    )
    target.register_tool(
        "get_merge_request_diffs",
        ToolConfig(
            title="Get Merge Request Diffs",
            description="Get the file diffs of a merge request",
            input_schema=MergeRequestPageArgs,
            annotations=READ_ONLY,
        ),
        get_merge_request_diffs,
    )
    target.register_tool(
        "mr_discussions",
        ToolConfig(
            title="List MR Discussions",
            description="List the discussion threads of a merge request",
            input_schema=MergeRequestPageArgs,
            annotations=READ_ONLY,
        ),
        mr_discussions,
    )
    target.register_tool(
        "create_merge_request_thread",
        ToolConfig(
            title="Create MR Thread",
            description="Start a new discussion thread on a merge request, optionally on a diff line",
            input_schema=CreateThreadArgs,
            annotations=WRITE,
        ),
        create_merge_request_thread,
    )
    target.register_tool(
        "resolve_merge_request_thread",
        ToolConfig(
            title="Resolve MR Thread",
            description="Resolve or unresolve a discussion thread on a merge request",
            input_schema=ResolveThreadArgs,
            annotations=WRITE,
        ),
        resolve_merge_request_thread,
    )
    target.register_tool(
        "create_merge_request_note",
        ToolConfig(
            title="Create MR Note",
            description="Add a comment to a merge request",
            input_schema=CreateNoteArgs,
            annotations=WRITE,
        ),
        create_merge_request_note,
    )
    target.register_tool(
        "get_merge_request_notes",
        ToolConfig(
            title="Get MR Notes",
            description="List the comments on a merge request",
            input_schema=MergeRequestPageArgs,
            annotations=READ_ONLY,
        ),
        get_merge_request_notes,
    )
    target.register_tool(
        "update_merge_request_note",
        ToolConfig(
            title="Update MR Note",
            description="Edit an existing merge request comment",
            input_schema=UpdateNoteArgs,
            annotations=DESTRUCTIVE,
        ),
        update_merge_request_note,
    )
    target.register_tool(
        "delete_merge_request_note",
        ToolConfig(
            title="Delete MR Note",
            description="Delete a merge request comment",
            input_schema=NoteRefArgs,
            annotations=DESTRUCTIVE,
        ),
        delete_merge_request_note,
    )

    logger.debug("Merge request operations registered")
