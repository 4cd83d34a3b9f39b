"""Project operation registrations: projects, group projects, members and labels."""

import logging
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabClient, encode_project_id
from ...utils.response import json_result, text_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import DESTRUCTIVE, READ_ONLY, WRITE, PageArgs, ProjectId, query_params

logger = logging.getLogger(__name__)


class GetProjectArgs(BaseModel):
    project_id: ProjectId


class ListProjectsArgs(PageArgs):
    search: Optional[str] = Field(None, description="Search by project name")
    owned: Optional[bool] = Field(None, description="Only projects owned by the current user")
    membership: Optional[bool] = Field(None, description="Only projects the current user is a member of")
    visibility: Optional[Literal["private", "internal", "public"]] = Field(
        None, description="Visibility filter"
    )
    order_by: Optional[Literal["id", "name", "path", "created_at", "updated_at", "last_activity_at"]] = Field(
        None, description="Order projects by"
    )
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction")
    archived: Optional[bool] = Field(None, description="Archived status filter")


class ListProjectMembersArgs(PageArgs):
    project_id: ProjectId
    query: Optional[str] = Field(None, description="Filter members by name or username")
    include_inherited: bool = Field(False, description="Include members inherited from parent groups")


class ListLabelsArgs(PageArgs):
    project_id: ProjectId
    search: Optional[str] = Field(None, description="Filter labels by keyword")
    with_counts: Optional[bool] = Field(None, description="Include issue and merge request counts")


class LabelRefArgs(BaseModel):
    project_id: ProjectId
    label_id: Union[int, str] = Field(description="Label ID or name")


class CreateLabelArgs(BaseModel):
    project_id: ProjectId
    name: str = Field(min_length=1, description="Label name")
    color: str = Field(description="Label color, e.g. '#FF0000'")
    description: Optional[str] = Field(None, description="Label description")
    priority: Optional[int] = Field(None, ge=0, description="Label priority")


class UpdateLabelArgs(LabelRefArgs):
    new_name: Optional[str] = Field(None, description="New label name")
    color: Optional[str] = Field(None, description="New label color")
    description: Optional[str] = Field(None, description="New description")
    priority: Optional[int] = Field(None, ge=0, description="New priority")


class ListGroupProjectsArgs(PageArgs):
    group_id: Union[int, str] = Field(description="Group ID or URL-encoded path")
    search: Optional[str] = Field(None, description="Search by project name")
    visibility: Optional[Literal["private", "internal", "public"]] = Field(
        None, description="Visibility filter"
    )
    archived: Optional[bool] = Field(None, description="Archived status filter")
    include_subgroups: Optional[bool] = Field(None, description="Include projects in subgroups")
    order_by: Optional[Literal["id", "name", "path", "created_at", "updated_at", "last_activity_at"]] = Field(
        None, description="Order projects by"
    )
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction")


def register_project_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register project operations through ``target``."""

    async def get_project(params: Dict[str, Any]):
        args = GetProjectArgs.model_validate(params)
        project = await client.get(f"/projects/{encode_project_id(args.project_id)}")
        return json_result(project)

    async def list_projects(params: Dict[str, Any]):
        args = ListProjectsArgs.model_validate(params)
        projects = await client.get("/projects", query_params(args))
        return json_result(projects)

    async def list_project_members(params: Dict[str, Any]):
        args = ListProjectMembersArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        # /members/all includes members inherited from ancestor groups
        endpoint = f"/projects/{project}/members/all" if args.include_inherited else f"/projects/{project}/members"
        members = await client.get(endpoint, query_params(args, "project_id", "include_inherited"))
        return json_result(members)

    async def list_labels(params: Dict[str, Any]):
        args = ListLabelsArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        labels = await client.get(f"/projects/{project}/labels", query_params(args, "project_id"))
        return json_result(labels)

    def label_path(args: LabelRefArgs) -> str:
        return f"/projects/{encode_project_id(args.project_id)}/labels/{encode_project_id(args.label_id)}"

    async def get_label(params: Dict[str, Any]):
        args = LabelRefArgs.model_validate(params)
        label = await client.get(label_path(args))
        return json_result(label)

    async def create_label(params: Dict[str, Any]):
        args = CreateLabelArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        label = await client.post(f"/projects/{project}/labels", query_params(args, "project_id"))
        return json_result(label)

    async def update_label(params: Dict[str, Any]):
        args = UpdateLabelArgs.model_validate(params)
        label = await client.put(label_path(args), query_params(args, "project_id", "label_id"))
        return json_result(label)

    async def delete_label(params: Dict[str, Any]):
        args = LabelRefArgs.model_validate(params)
        await client.delete(label_path(args))
        return text_result("Label deleted successfully")

    async def list_group_projects(params: Dict[str, Any]):
        args = ListGroupProjectsArgs.model_validate(params)
        group = encode_project_id(args.group_id)
        projects = await client.get(f"/groups/{group}/projects", query_params(args, "group_id"))
        return json_result(projects)

    target.register_tool(
        "get_project",
        ToolConfig(
            title="Get Project",
            description="Get details of a specific GitLab project",
            input_schema=GetProjectArgs,
            annotations=READ_ONLY,
        ),
        get_project,
    )
    target.register_tool(
        "list_projects",
        ToolConfig(
            title="List Projects",
            description="List GitLab projects accessible to the current user",
            input_schema=ListProjectsArgs,
            annotations=READ_ONLY,
        ),
        list_projects,
    )
    target.register_tool(
        "list_project_members",
        ToolConfig(
            title="List Project Members",
            description="List the members of a GitLab project",
            input_schema=ListProjectMembersArgs,
            annotations=READ_ONLY,
        ),
        list_project_members,
    )
    target.register_tool(
        "list_labels",
        ToolConfig(
            title="List Labels",
            description="List the labels defined in a GitLab project",
            input_schema=ListLabelsArgs,
            annotations=READ_ONLY,
        ),
        list_labels,
    )
    target.register_tool(
        "get_label",
        ToolConfig(
            title="Get Label",
            description="Get a single project label by ID or name",
            input_schema=LabelRefArgs,
            annotations=READ_ONLY,
        ),
        get_label,
    )
    target.register_tool(
        "create_label",
        ToolConfig(
            title="Create Label",
            description="Create a new label in a GitLab project",
            input_schema=CreateLabelArgs,
            annotations=WRITE,
        ),
        create_label,
    )
    target.register_tool(
        "update_label",
        ToolConfig(
            title="Update Label",
            description="Rename or recolor an existing project label",
            input_schema=UpdateLabelArgs,
            annotations=DESTRUCTIVE,
        ),
        update_label,
    )
    target.register_tool(
        "delete_label",
        ToolConfig(
            title="Delete Label",
            description="Delete a label from a GitLab project",
            input_schema=LabelRefArgs,
            annotations=DESTRUCTIVE,
        ),
        delete_label,
    )
    target.register_tool(
        "list_group_projects",
        ToolConfig(
            title="List Group Projects",
            description="List the projects of a GitLab group with filtering options",
            input_schema=ListGroupProjectsArgs,
            annotations=READ_ONLY,
        ),
        list_group_projects,
    )

    logger.debug("Project operations registered")
