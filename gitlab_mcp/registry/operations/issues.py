"""
Issue operation registrations.

Registers create/list/get/update/delete issue operations, issue notes,
discussions and links between issues.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabClient, encode_project_id
from ...utils.response import json_result, text_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import DESTRUCTIVE, READ_ONLY, WRITE, PageArgs, ProjectId, query_params

logger = logging.getLogger(__name__)

IssueState = Literal["opened", "closed", "all"]
IssueScope = Literal["created_by_me", "assigned_to_me", "all"]


# ============================================================================
# Input Schemas
# ============================================================================

class CreateIssueArgs(BaseModel):
    project_id: ProjectId
    title: str = Field(min_length=1, description="Issue title")
    description: Optional[str] = Field(None, description="Issue description")
    assignee_ids: Optional[List[int]] = Field(None, description="Assignee user IDs")
    labels: Optional[str] = Field(None, description="Comma-separated labels")
    milestone_id: Optional[int] = Field(None, description="Milestone ID")
    due_date: Optional[str] = Field(None, description="Due date (YYYY-MM-DD)")
    confidential: Optional[bool] = Field(None, description="Mark as confidential")


class ListIssuesArgs(PageArgs):
    project_id: ProjectId
    state: Optional[IssueState] = Field(None, description="Issue state filter")
    scope: Optional[IssueScope] = Field(None, description="Scope filter")
    labels: Optional[str] = Field(None, description="Comma-separated labels filter")
    milestone: Optional[str] = Field(None, description="Milestone title")
    search: Optional[str] = Field(None, description="Search in title and description")


class MyIssuesArgs(PageArgs):
    state: Optional[IssueState] = Field(None, description="Issue state filter")
    scope: IssueScope = Field("assigned_to_me", description="Scope filter")


class IssueRefArgs(BaseModel):
    project_id: ProjectId
    issue_iid: int = Field(ge=1, description="Issue IID")


class UpdateIssueArgs(IssueRefArgs):
    title: Optional[str] = Field(None, description="New title")
    description: Optional[str] = Field(None, description="New description")
    assignee_ids: Optional[List[int]] = Field(None, description="Assignee user IDs")
    labels: Optional[str] = Field(None, description="Comma-separated labels")
    milestone_id: Optional[int] = Field(None, description="Milestone ID")
    state_event: Optional[Literal["close", "reopen"]] = Field(None, description="State change")
    due_date: Optional[str] = Field(None, description="Due date (YYYY-MM-DD)")
    confidential: Optional[bool] = Field(None, description="Mark as confidential")


class CreateIssueNoteArgs(IssueRefArgs):
    body: str = Field(min_length=1, description="Note body")


class UpdateIssueNoteArgs(IssueRefArgs):
    note_id: int = Field(ge=1, description="Note ID")
    body: str = Field(min_length=1, description="New note body")


class IssuePageArgs(IssueRefArgs, PageArgs):
    pass


class CreateIssueLinkArgs(IssueRefArgs):
    target_project_id: ProjectId
    target_issue_iid: int = Field(ge=1, description="IID of the issue to link to")
    link_type: Optional[Literal["relates_to", "blocks", "is_blocked_by"]] = Field(
        None, description="Relationship of this issue to the target"
    )


class IssueLinkRefArgs(IssueRefArgs):
    issue_link_id: int = Field(ge=1, description="Issue link ID")


# ============================================================================
# Registration Function
# ============================================================================

def register_issue_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register issue operations through ``target``."""

    async def create_issue(params: Dict[str, Any]):
        args = CreateIssueArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        issue = await client.post(f"/projects/{project}/issues", query_params(args, "project_id"))
        return json_result(issue)

    async def list_issues(params: Dict[str, Any]):
        args = ListIssuesArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        issues = await client.get(f"/projects/{project}/issues", query_params(args, "project_id"))
        return json_result(issues)

    async def my_issues(params: Dict[str, Any]):
        args = MyIssuesArgs.model_validate(params)
        issues = await client.get("/issues", query_params(args))
        return json_result(issues)

    async def get_issue(params: Dict[str, Any]):
        args = IssueRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        issue = await client.get(f"/projects/{project}/issues/{args.issue_iid}")
        return json_result(issue)

    async def update_issue(params: Dict[str, Any]):
        args = UpdateIssueArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        issue = await client.put(
            f"/projects/{project}/issues/{args.issue_iid}",
            query_params(args, "project_id", "issue_iid"),
        )
        return json_result(issue)

    async def delete_issue(params: Dict[str, Any]):
        args = IssueRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        await client.delete(f"/projects/{project}/issues/{args.issue_iid}")
        return text_result("Issue deleted successfully")

    async def create_issue_note(params: Dict[str, Any]):
        args = CreateIssueNoteArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        note = await client.post(
            f"/projects/{project}/issues/{args.issue_iid}/notes",
            {"body": args.body},
        )
        return json_result(note)

    async def update_issue_note(params: Dict[str, Any]):
        args = UpdateIssueNoteArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        note = await client.put(
            f"/projects/{project}/issues/{args.issue_iid}/notes/{args.note_id}",
            {"body": args.body},
        )
        return json_result(note)

    async def list_issue_discussions(params: Dict[str, Any]):
        args = IssuePageArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        discussions = await client.get(
            f"/projects/{project}/issues/{args.issue_iid}/discussions",
            query_params(args, "project_id", "issue_iid"),
        )
        return json_result(discussions)

    async def list_issue_links(params: Dict[str, Any]):
        args = IssueRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        links = await client.get(f"/projects/{project}/issues/{args.issue_iid}/links")
        return json_result(links)

    async def create_issue_link(params: Dict[str, Any]):
        args = CreateIssueLinkArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        link = await client.post(
            f"/projects/{project}/issues/{args.issue_iid}/links",
            query_params(args, "project_id", "issue_iid"),
        )
        return json_result(link)

    async def delete_issue_link(params: Dict[str, Any]):
        args = IssueLinkRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        await client.delete(f"/projects/{project}/issues/{args.issue_iid}/links/{args.issue_link_id}")
        return text_result("Issue link deleted successfully")

    target.register_tool(
        "create_issue",
        ToolConfig(
            title="Create Issue",
            description="Create a new issue in a GitLab project",
            input_schema=CreateIssueArgs,
            annotations=WRITE,
        ),
        create_issue,
    )
    target.register_tool(
        "list_issues",
        ToolConfig(
            title="List Issues",
            description="List issues in a GitLab project",
            input_schema=ListIssuesArgs,
            annotations=READ_ONLY,
        ),
        list_issues,
    )
    target.register_tool(
        "my_issues",
        ToolConfig(
            title="My Issues",
            description="List issues assigned to the authenticated user",
            input_schema=MyIssuesArgs,
            annotations=READ_ONLY,
        ),
        my_issues,
    )
    target.register_tool(
        "get_issue",
        ToolConfig(
            title="Get Issue",
            description="Get details of a specific issue in a GitLab project",
            input_schema=IssueRefArgs,
            annotations=READ_ONLY,
        ),
        get_issue,
    )
    target.register_tool(
        "update_issue",
        ToolConfig(
            title="Update Issue",
            description="Update an issue in a GitLab project",
            input_schema=UpdateIssueArgs,
            annotations=DESTRUCTIVE,
        ),
        update_issue,
    )
    target.register_tool(
        "delete_issue",
        ToolConfig(
            title="Delete Issue",
            description="Delete an issue from a GitLab project",
            input_schema=IssueRefArgs,
            annotations=DESTRUCTIVE,
        ),
        delete_issue,
    )
    target.register_tool(
        "create_issue_note",
        ToolConfig(
            title="Create Issue Note",
            description="Add a comment to an issue",
            input_schema=CreateIssueNoteArgs,
            annotations=WRITE,
        ),
        create_issue_note,
    )
    target.register_tool(
        "update_issue_note",
        ToolConfig(
            title="Update Issue Note",
            description="Edit an existing issue comment",
            input_schema=UpdateIssueNoteArgs,
            annotations=DESTRUCTIVE,
        ),
        update_issue_note,
    )
    target.register_tool(
        "list_issue_discussions",
        ToolConfig(
            title="List Issue Discussions",
            description="List the discussion threads of an issue",
            input_schema=IssuePageArgs,
            annotations=READ_ONLY,
        ),
        list_issue_discussions,
    )
    target.register_tool(
        "list_issue_links",
        ToolConfig(
            title="List Issue Links",
            description="List the issues linked to an issue",
            input_schema=IssueRefArgs,
            annotations=READ_ONLY,
        ),
        list_issue_links,
    )
    target.register_tool(
        "create_issue_link",
        ToolConfig(
            title="Create Issue Link",
            description="Link two issues, optionally as blocking or blocked",
            input_schema=CreateIssueLinkArgs,
            annotations=WRITE,
        ),
        create_issue_link,
    )
    target.register_tool(
        "delete_issue_link",
        ToolConfig(
            title="Delete Issue Link",
            description="Remove a link between two issues",
            input_schema=IssueLinkRefArgs,
            annotations=DESTRUCTIVE,
        ),
        delete_issue_link,
    )

    logger.debug("Issue operations registered")
