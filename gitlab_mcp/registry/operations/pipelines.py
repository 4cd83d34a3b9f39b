"""
Pipeline operation registrations.

Pipelines and their jobs. Only registered when the ``use_pipeline`` feature
flag is enabled.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ...utils.gitlab_client import GitLabClient, encode_project_id
from ...utils.response import json_result, text_result
from ..adapter import RegistrationTarget, ToolConfig
from .common import DESTRUCTIVE, READ_ONLY, WRITE, PageArgs, ProjectId, query_params

logger = logging.getLogger(__name__)

PipelineStatus = Literal[
    "created", "waiting_for_resource", "preparing", "pending", "running",
    "success", "failed", "canceled", "skipped", "manual", "scheduled",
]


# ============================================================================
# Input Schemas
# ============================================================================

class ListPipelinesArgs(PageArgs):
    project_id: ProjectId
    status: Optional[PipelineStatus] = Field(None, description="Pipeline status filter")
    ref: Optional[str] = Field(None, description="Branch or tag filter")
    sha: Optional[str] = Field(None, description="Commit SHA filter")
    username: Optional[str] = Field(None, description="Triggering user filter")
    order_by: Optional[Literal["id", "status", "ref", "updated_at", "user_id"]] = Field(
        None, description="Order pipelines by"
    )
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction")


class PipelineRefArgs(BaseModel):
    project_id: ProjectId
    pipeline_id: int = Field(ge=1, description="Pipeline ID")


class PipelineVariable(BaseModel):
    key: str = Field(min_length=1, description="Variable name")
    value: str = Field(description="Variable value")
    variable_type: Literal["env_var", "file"] = Field("env_var", description="Variable type")


class CreatePipelineArgs(BaseModel):
    project_id: ProjectId
    ref: str = Field(min_length=1, description="Branch or tag to run the pipeline for")
    variables: Optional[List[PipelineVariable]] = Field(None, description="Pipeline variables")


class ListPipelineJobsArgs(PipelineRefArgs, PageArgs):
    scope: Optional[List[Literal[
        "created", "pending", "running", "failed", "success", "canceled", "skipped", "manual",
    ]]] = Field(None, description="Job scopes to include")
    include_retried: Optional[bool] = Field(None, description="Include retried jobs")


class JobRefArgs(BaseModel):
    project_id: ProjectId
    job_id: int = Field(ge=1, description="Job ID")


class JobVariable(BaseModel):
    key: str = Field(min_length=1, description="Variable name")
    value: str = Field(description="Variable value")


class PlayJobArgs(JobRefArgs):
    job_variables_attributes: Optional[List[JobVariable]] = Field(
        None, description="Variables passed to the manual job"
    )


# ============================================================================
# Registration Function
# ============================================================================

def register_pipeline_operations(target: RegistrationTarget, client: GitLabClient) -> None:
    """Register pipeline operations through ``target``."""

    async def list_pipelines(params: Dict[str, Any]):
        args = ListPipelinesArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        pipelines = await client.get(f"/projects/{project}/pipelines", query_params(args, "project_id"))
        return json_result(pipelines)

    async def get_pipeline(params: Dict[str, Any]):
        args = PipelineRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        pipeline = await client.get(f"/projects/{project}/pipelines/{args.pipeline_id}")
        return json_result(pipeline)

    async def create_pipeline(params: Dict[str, Any]):
        args = CreatePipelineArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        pipeline = await client.post(f"/projects/{project}/pipeline", query_params(args, "project_id"))
        return json_result(pipeline)

    async def retry_pipeline(params: Dict[str, Any]):
        args = PipelineRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        pipeline = await client.post(f"/projects/{project}/pipelines/{args.pipeline_id}/retry")
        return json_result(pipeline)

    async def cancel_pipeline(params: Dict[str, Any]):
        args = PipelineRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        pipeline = await client.post(f"/projects/{project}/pipelines/{args.pipeline_id}/cancel")
        return json_result(pipeline)

    async def list_pipeline_jobs(params: Dict[str, Any]):
        args = ListPipelineJobsArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        jobs = await client.get(
            f"/projects/{project}/pipelines/{args.pipeline_id}/jobs",
            query_params(args, "project_id", "pipeline_id"),
        )
        return json_result(jobs)

    async def get_pipeline_job_output(params: Dict[str, Any]):
        args = JobRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        trace = await client.get_text(f"/projects/{project}/jobs/{args.job_id}/trace")
        return text_result(trace)

    async def retry_pipeline_job(params: Dict[str, Any]):
        args = JobRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        job = await client.post(f"/projects/{project}/jobs/{args.job_id}/retry")
        return json_result(job)

    async def cancel_pipeline_job(params: Dict[str, Any]):
        args = JobRefArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        job = await client.post(f"/projects/{project}/jobs/{args.job_id}/cancel")
        return json_result(job)

    async def play_pipeline_job(params: Dict[str, Any]):
        args = PlayJobArgs.model_validate(params)
        project = encode_project_id(args.project_id)
        job = await client.post(
            f"/projects/{project}/jobs/{args.job_id}/play",
            query_params(args, "project_id", "job_id"),
        )
        return json_result(job)

    target.register_tool(
        "list_pipelines",
        ToolConfig(
            title="List Pipelines",
            description="List pipelines in a GitLab project with filtering options",
            input_schema=ListPipelinesArgs,
            annotations=READ_ONLY,
        ),
        list_pipelines,
    )
    target.register_tool(
        "get_pipeline",
        ToolConfig(
            title="Get Pipeline",
            description="Get details of a specific pipeline",
            input_schema=PipelineRefArgs,
            annotations=READ_ONLY,
        ),
        get_pipeline,
    )
    target.register_tool(
        "create_pipeline",
        ToolConfig(
            title="Create Pipeline",
            description="Trigger a new pipeline for a branch or tag",
            input_schema=CreatePipelineArgs,
            annotations=WRITE,
        ),
        create_pipeline,
    )
    target.register_tool(
        "retry_pipeline",
        ToolConfig(
            title="Retry Pipeline",
            description="Retry the failed jobs of a pipeline",
            input_schema=PipelineRefArgs,
            annotations=WRITE,
        ),
        retry_pipeline,
    )
    target.register_tool(
        "cancel_pipeline",
        ToolConfig(
            title="Cancel Pipeline",
            description="Cancel a running pipeline",
            input_schema=PipelineRefArgs,
            annotations=DESTRUCTIVE,
        ),
        cancel_pipeline,
    )
    target.register_tool(
        "list_pipeline_jobs",
        ToolConfig(
            title="List Pipeline Jobs",
            description="List the jobs of a pipeline",
            input_schema=ListPipelineJobsArgs,
            annotations=READ_ONLY,
        ),
        list_pipeline_jobs,
    )
    target.register_tool(
        "get_pipeline_job_output",
        ToolConfig(
            title="Get Pipeline Job Output",
            description="Get the log output (trace) of a pipeline job",
            input_schema=JobRefArgs,
            annotations=READ_ONLY,
        ),
        get_pipeline_job_output,
    )
    target.register_tool(
        "retry_pipeline_job",
        ToolConfig(
            title="Retry Pipeline Job",
            description="Retry a failed or canceled pipeline job",
            input_schema=JobRefArgs,
            annotations=WRITE,
        ),
        retry_pipeline_job,
    )
    target.register_tool(
        "cancel_pipeline_job",
        ToolConfig(
            title="Cancel Pipeline Job",
            description="Cancel a running pipeline job",
            input_schema=JobRefArgs,
            annotations=DESTRUCTIVE,
        ),
        cancel_pipeline_job,
    )
    target.register_tool(
        "play_pipeline_job",
        ToolConfig(
            title="Play Pipeline Job",
            description="Run a manual pipeline job",
            input_schema=PlayJobArgs,
            annotations=WRITE,
        ),
        play_pipeline_job,
    )

    logger.debug("Pipeline operations registered")
