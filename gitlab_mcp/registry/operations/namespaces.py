"""Namespace operation registrations."""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabAPIError, GitLabClient, encode_project_id
from ...utils.response import json_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import READ_ONLY, PageArgs, query_params

logger = logging.getLogger(__name__)


class ListNamespacesArgs(PageArgs):
    search: Optional[str] = Field(None, description="Search namespaces by name or path")
    owned_only: Optional[bool] = Field(None, description="Only namespaces owned by the current user")


class NamespaceArgs(BaseModel):
    namespace_id: str = Field(min_length=1, description="Namespace ID or full path")


class VerifyNamespaceArgs(BaseModel):
    path: str = Field(min_length=1, description="Namespace path to check")


def register_namespace_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register namespace operations through ``target``."""

    async def list_namespaces(params: Dict[str, Any]):
        args = ListNamespacesArgs.model_validate(params)
        namespaces = await client.get("/namespaces", query_params(args))
        return json_result(namespaces)

    async def get_namespace(params: Dict[str, Any]):
        args = NamespaceArgs.model_validate(params)
        namespace = await client.get(f"/namespaces/{encode_project_id(args.namespace_id)}")
        return json_result(namespace)

    async def verify_namespace(params: Dict[str, Any]):
        args = VerifyNamespaceArgs.model_validate(params)
        try:
            namespace = await client.get(f"/namespaces/{encode_project_id(args.path)}/exists")
        except GitLabAPIError as e:
            if e.status_code != 404:
                raise
            return json_result({"exists": False, "path": args.path})
        return json_result({"path": args.path, **namespace})

    target.register_tool(
        "list_namespaces",
        ToolConfig(
            title="List Namespaces",
            description="List namespaces available to the current user",
            input_schema=ListNamespacesArgs,
            annotations=READ_ONLY,
        ),
        list_namespaces,
    )
    target.register_tool(
        "get_namespace",
        ToolConfig(
            title="Get Namespace",
            description="Get details of a namespace by ID or path",
            input_schema=NamespaceArgs,
            annotations=READ_ONLY,
        ),
        get_namespace,
    )
    target.register_tool(
        "verify_namespace",
        ToolConfig(
            title="Verify Namespace",
            description="Check whether a namespace path exists",
            input_schema=VerifyNamespaceArgs,
            annotations=READ_ONLY,
        ),
        verify_namespace,
    )

    logger.debug("Namespace operations registered")
