"""User operation registrations."""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabClient
from ...utils.response import json_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import READ_ONLY, PageArgs, query_params

logger = logging.getLogger(__name__)


class GetUsersArgs(BaseModel):
    usernames: List[str] = Field(min_length=1, description="Usernames to look up")


class GetUserArgs(BaseModel):
    user_id: int = Field(ge=1, description="User ID")


class SearchUsersArgs(PageArgs):
    search: str = Field(min_length=1, description="Name, username or public email to search for")
    active: Optional[bool] = Field(None, description="Only active users")


def register_user_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register user operations through ``target``."""

    async def get_users(params: Dict[str, Any]):
        args = GetUsersArgs.model_validate(params)
        users: Dict[str, Any] = {}
        for username in args.usernames:
            matches = await client.get("/users", {"username": username})
            users[username] = matches[0] if matches else None
        return json_result(users)

    async def get_user(params: Dict[str, Any]):
        args = GetUserArgs.model_validate(params)
        user = await client.get(f"/users/{args.user_id}")
        return json_result(user)

    async def search_users(params: Dict[str, Any]):
        args = SearchUsersArgs.model_validate(params)
        users = await client.get("/users", query_params(args))
        return json_result(users)

    target.register_tool(
        "get_users",
        ToolConfig(
            title="Get Users",
            description="Look up GitLab users by username",
            input_schema=GetUsersArgs,
            annotations=READ_ONLY,
        ),
        get_users,
    )
    target.register_tool(
        "get_user",
        ToolConfig(
            title="Get User",
            description="Get details of a GitLab user by ID",
            input_schema=GetUserArgs,
            annotations=READ_ONLY,
        ),
        get_user,
    )
    target.register_tool(
        "search_users",
        ToolConfig(
            title="Search Users",
            description="Search GitLab users by name, username or email",
            input_schema=SearchUsersArgs,
            annotations=READ_ONLY,
        ),
        search_users,
    )

    logger.debug("User operations registered")
