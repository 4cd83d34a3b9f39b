"""
Tests for GitLab domain operations

Tests cover:
1. register_all_operations (categories, feature flags, read-only mode)
2. Handler dispatch to the expected GitLab endpoints
3. Handler-side validation and error propagation
"""

import base64
import json

import httpx
import pytest

from gitlab_mcp.config.settings import ServerSettings
from gitlab_mcp.registry.operation_registry import OperationRegistry
from gitlab_mcp.registry.operations import register_all_operations
from gitlab_mcp.tools.meta_tools import MetaTools
from gitlab_mcp.utils.gitlab_client import GitLabAPIError, GitLabClient
from gitlab_mcp.utils.response import is_error, result_text


# ============================================================================
# Test Fixtures
# ============================================================================

class FakeGitLab:
    """Records requests and answers from a route table."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, method, path, response):
        self.routes[(method, path)] = response

    def __call__(self, request):
        self.requests.append(request)
        path = request.url.raw_path.split(b"?")[0].decode()
        response = self.routes.get((request.method, path))
        if response is None:
            return httpx.Response(200, json={"method": request.method, "path": path})
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def last(self):
        return self.requests[-1]


def settings_with(**overrides):
    settings = ServerSettings(gitlab_api_url="https://gitlab.example.com/api/v4")
    flags = overrides.pop("flags", {})
    settings.feature_flags.update(flags)
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


@pytest.fixture
def gitlab():
    return FakeGitLab()


@pytest.fixture
def client(gitlab):
    return GitLabClient(
        "https://gitlab.example.com/api/v4",
        token="glpat-test",
        transport=httpx.MockTransport(gitlab),
    )


@pytest.fixture
def registry(client):
    registry = OperationRegistry(strict_categories=True)
    register_all_operations(registry, client, settings_with(flags={"use_pipeline": True}))
    return registry


async def run(registry, name, params):
    return await registry.get_handler(name)(params)


def payload(result):
    return json.loads(result_text(result))


# ============================================================================
# Registration
# ============================================================================

class TestRegisterAll:
    """Test wiring every domain module into the registry."""

    def test_categories_and_counts(self, registry):
        counts = {info.name: info.tool_count for info in registry.list_categories()}

        assert counts == {
            "repositories": 9,
            "merge-requests": 13,
            "issues": 12,
            "pipelines": 10,
            "projects": 9,
            "commits": 3,
            "namespaces": 3,
            "users": 3,
            "search": 3,
        }
        assert len(registry) == 65

    def test_pipelines_require_feature_flag(self, client):
        registry = OperationRegistry()
        register_all_operations(registry, client, settings_with())

        assert registry.list_operations("pipelines") == []
        assert not registry.has_operation("list_pipelines")

    def test_read_only_mode_skips_writes(self, client):
        registry = OperationRegistry()
        skipped = register_all_operations(
            registry, client, settings_with(read_only_mode=True, flags={"use_pipeline": True})
        )

        assert "create_issue" in skipped
        assert "merge_merge_request" in skipped
        assert "cancel_pipeline" in skipped
        assert not registry.has_operation("delete_issue")
        assert registry.has_operation("list_issues")
        for name in registry.all_names():
            assert registry.get_schema(name).annotations["readOnlyHint"] is True

    def test_every_schema_serializes(self, registry):
        for name in registry.all_names():
            descriptor = registry.get_schema(name)
            serialized = registry.serialize(descriptor.input_schema)
            assert set(serialized) == set(descriptor.input_schema)
            json.dumps(serialized)

    def test_project_id_schema(self, registry):
        schema = registry.serialize(registry.get_schema("get_issue").input_schema)

        assert schema["project_id"]["oneOf"] == [{"type": "integer"}, {"type": "string"}]
        assert schema["issue_iid"] == {"type": "integer", "minimum": 1, "description": "Issue IID"}


# ============================================================================
# Handlers
# ============================================================================

class TestIssueHandlers:

    @pytest.mark.asyncio
    async def test_list_issues(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/group%2Fapp/issues", [{"iid": 1}])

        result = await run(registry, "list_issues", {"project_id": "group/app", "state": "opened"})

        assert payload(result) == [{"iid": 1}]
        assert gitlab.last.url.params["state"] == "opened"

    @pytest.mark.asyncio
    async def test_create_issue_body(self, registry, gitlab):
        await run(registry, "create_issue", {
            "project_id": 5,
            "title": "Broken build",
            "labels": "bug,ci",
        })

        assert gitlab.last.method == "POST"
        assert json.loads(gitlab.last.content) == {"title": "Broken build", "labels": "bug,ci"}

    @pytest.mark.asyncio
    async def test_delete_issue(self, registry, gitlab):
        gitlab.route("DELETE", "/api/v4/projects/5/issues/3", httpx.Response(204))

        result = await run(registry, "delete_issue", {"project_id": 5, "issue_iid": 3})

        assert result_text(result) == "Issue deleted successfully"

    @pytest.mark.asyncio
    async def test_my_issues_default_scope(self, registry, gitlab):
        await run(registry, "my_issues", {})

        assert gitlab.last.url.params["scope"] == "assigned_to_me"

    @pytest.mark.asyncio
    async def test_validation_error_raises(self, registry, gitlab):
        with pytest.raises(ValueError):
            await run(registry, "get_issue", {"project_id": "group/app"})
        assert gitlab.requests == []


class TestRepositoryHandlers:

    @pytest.mark.asyncio
    async def test_get_file_contents_decodes_base64(self, registry, gitlab):
        content = base64.b64encode(b"print('hi')\n").decode()
        gitlab.route("GET", "/api/v4/projects/1/repository/files/src%2Fmain.py", {
            "file_path": "src/main.py",
            "encoding": "base64",
            "content": content,
        })

        result = await run(registry, "get_file_contents", {"project_id": 1, "file_path": "src/main.py"})

        assert payload(result)["content"] == "print('hi')\n"
        assert gitlab.last.url.params["ref"] == "HEAD"

    @pytest.mark.asyncio
    async def test_create_branch_uses_default_branch(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/1", {"default_branch": "develop"})

        await run(registry, "create_branch", {"project_id": 1, "branch": "feature/x"})

        assert json.loads(gitlab.last.content) == {"branch": "feature/x", "ref": "develop"}


class TestMergeRequestHandlers:

    @pytest.mark.asyncio
    async def test_get_by_source_branch(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/1/merge_requests", [{"iid": 9}])

        result = await run(registry, "get_merge_request", {"project_id": 1, "source_branch": "fix"})

        assert payload(result) == {"iid": 9}
        assert gitlab.last.url.params["source_branch"] == "fix"

    @pytest.mark.asyncio
    async def test_get_requires_iid_or_branch(self, registry):
        with pytest.raises(ValueError, match="merge_request_iid or source_branch"):
            await run(registry, "get_merge_request", {"project_id": 1})

    @pytest.mark.asyncio
    async def test_merge(self, registry, gitlab):
        await run(registry, "merge_merge_request", {"project_id": 1, "merge_request_iid": 4, "squash": True})

        assert gitlab.last.method == "PUT"
        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/merge_requests/4/merge"
        assert json.loads(gitlab.last.content) == {"squash": True}


class TestOtherHandlers:

    @pytest.mark.asyncio
    async def test_list_pipeline_jobs_scope_array(self, registry, gitlab):
        await run(registry, "list_pipeline_jobs", {
            "project_id": 1,
            "pipeline_id": 77,
            "scope": ["failed", "success"],
        })

        assert gitlab.last.url.params.get_list("scope[]") == ["failed", "success"]

    @pytest.mark.asyncio
    async def test_get_users_collects_by_username(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/users", [])

        result = await run(registry, "get_users", {"usernames": ["ghost"]})

        assert payload(result) == {"ghost": None}

    @pytest.mark.asyncio
    async def test_verify_namespace_missing(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/namespaces/nobody/exists", httpx.Response(404, text="404 Not Found"))

        result = await run(registry, "verify_namespace", {"path": "nobody"})

        assert payload(result) == {"exists": False, "path": "nobody"}

    @pytest.mark.asyncio
    async def test_project_search_drops_empty_ref(self, registry, gitlab):
        await run(registry, "project_search", {"project_id": 1, "scope": "blobs", "search": "TODO"})

        assert "ref" not in gitlab.last.url.params
        assert gitlab.last.url.params["scope"] == "blobs"

    @pytest.mark.asyncio
    async def test_api_error_propagates(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/1", httpx.Response(500, text="boom"))

        with pytest.raises(GitLabAPIError):
            await run(registry, "get_project", {"project_id": 1})

    @pytest.mark.asyncio
    async def test_api_error_contained_by_execute_tool(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/1", httpx.Response(500, text="boom"))

        result = await MetaTools(registry).handle_tool(
            "execute_tool", {"toolName": "get_project", "params": {"project_id": 1}}
        )

        assert is_error(result)
        assert result_text(result).startswith("Tool execution failed: GitLab API error: 500")


class TestFileHandlers:

    @pytest.mark.asyncio
    async def test_create_file_when_missing(self, registry, gitlab):
        gitlab.route(
            "GET", "/api/v4/projects/1/repository/files/docs%2FREADME.md",
            httpx.Response(404, text="404 File Not Found"),
        )

        await run(registry, "create_or_update_file", {
            "project_id": 1,
            "file_path": "docs/README.md",
            "branch": "main",
            "content": "# Hello\n",
            "commit_message": "Add readme",
        })

        assert gitlab.requests[0].url.params["ref"] == "main"
        assert gitlab.last.method == "POST"
        assert json.loads(gitlab.last.content) == {
            "branch": "main",
            "commit_message": "Add readme",
            "content": base64.b64encode(b"# Hello\n").decode(),
            "encoding": "base64",
        }

    @pytest.mark.asyncio
    async def test_update_file_when_present(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/1/repository/files/app.py", {"file_path": "app.py"})

        await run(registry, "create_or_update_file", {
            "project_id": 1,
            "file_path": "app.py",
            "branch": "main",
            "content": "x = 1\n",
            "commit_message": "Bump",
        })

        assert gitlab.last.method == "PUT"
        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/repository/files/app.py"

    @pytest.mark.asyncio
    async def test_lookup_failure_other_than_404_propagates(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/1/repository/files/app.py", httpx.Response(500, text="boom"))

        with pytest.raises(GitLabAPIError):
            await run(registry, "create_or_update_file", {
                "project_id": 1,
                "file_path": "app.py",
                "branch": "main",
                "content": "",
                "commit_message": "Bump",
            })
        assert len(gitlab.requests) == 1

    @pytest.mark.asyncio
    async def test_push_files_single_commit(self, registry, gitlab):
        await run(registry, "push_files", {
            "project_id": "group/app",
            "branch": "feature/docs",
            "start_branch": "main",
            "commit_message": "Docs",
            "files": [
                {"file_path": "a.md", "content": "A"},
                {"file_path": "old.md", "action": "delete"},
            ],
        })

        assert gitlab.last.url.raw_path == b"/api/v4/projects/group%2Fapp/repository/commits"
        assert json.loads(gitlab.last.content) == {
            "branch": "feature/docs",
            "commit_message": "Docs",
            "start_branch": "main",
            "actions": [
                {"file_path": "a.md", "content": "A", "action": "create"},
                {"file_path": "old.md", "content": "", "action": "delete"},
            ],
        }

    @pytest.mark.asyncio
    async def test_push_files_requires_files(self, registry, gitlab):
        with pytest.raises(ValueError):
            await run(registry, "push_files", {
                "project_id": 1, "branch": "main", "commit_message": "Empty", "files": [],
            })
        assert gitlab.requests == []

    @pytest.mark.asyncio
    async def test_get_branch_diffs_query(self, registry, gitlab):
        await run(registry, "get_branch_diffs", {"project_id": 1, "from": "main", "to": "feature", "straight": True})

        assert gitlab.last.url.raw_path.startswith(b"/api/v4/projects/1/repository/compare?")
        assert gitlab.last.url.params["from"] == "main"
        assert gitlab.last.url.params["to"] == "feature"
        assert gitlab.last.url.params["straight"] == "true"

    def test_branch_diffs_schema_uses_api_names(self, registry):
        schema = registry.serialize(registry.get_schema("get_branch_diffs").input_schema)

        assert list(schema) == ["project_id", "from", "to", "straight"]


class TestNoteAndThreadHandlers:

    @pytest.mark.asyncio
    async def test_create_thread_with_position(self, registry, gitlab):
        await run(registry, "create_merge_request_thread", {
            "project_id": 1,
            "merge_request_iid": 4,
            "body": "Off by one?",
            "position": {
                "base_sha": "aaa", "start_sha": "bbb", "head_sha": "ccc",
                "new_path": "app.py", "new_line": 12,
            },
        })

        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/merge_requests/4/discussions"
        assert json.loads(gitlab.last.content) == {
            "body": "Off by one?",
            "position": {
                "base_sha": "aaa", "start_sha": "bbb", "head_sha": "ccc",
                "position_type": "text", "new_path": "app.py", "new_line": 12,
            },
        }

    @pytest.mark.asyncio
    async def test_resolve_thread(self, registry, gitlab):
        await run(registry, "resolve_merge_request_thread", {
            "project_id": 1, "merge_request_iid": 4, "discussion_id": "6a9c1750",
        })

        assert gitlab.last.method == "PUT"
        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/merge_requests/4/discussions/6a9c1750"
        assert json.loads(gitlab.last.content) == {"resolved": True}

    @pytest.mark.asyncio
    async def test_merge_request_notes_paged(self, registry, gitlab):
        gitlab.route("GET", "/api/v4/projects/1/merge_requests/4/notes", [{"id": 301}])

        result = await run(registry, "get_merge_request_notes", {"project_id": 1, "merge_request_iid": 4, "page": 2})

        assert payload(result) == [{"id": 301}]
        assert gitlab.last.url.params["page"] == "2"

    @pytest.mark.asyncio
    async def test_delete_merge_request_note(self, registry, gitlab):
        gitlab.route("DELETE", "/api/v4/projects/1/merge_requests/4/notes/301", httpx.Response(204))

        result = await run(registry, "delete_merge_request_note", {
            "project_id": 1, "merge_request_iid": 4, "note_id": 301,
        })

        assert result_text(result) == "Note deleted successfully"

    @pytest.mark.asyncio
    async def test_update_issue_note(self, registry, gitlab):
        await run(registry, "update_issue_note", {
            "project_id": 1, "issue_iid": 3, "note_id": 55, "body": "Edited",
        })

        assert gitlab.last.method == "PUT"
        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/issues/3/notes/55"
        assert json.loads(gitlab.last.content) == {"body": "Edited"}

    @pytest.mark.asyncio
    async def test_create_issue_link(self, registry, gitlab):
        await run(registry, "create_issue_link", {
            "project_id": 1,
            "issue_iid": 3,
            "target_project_id": "group/other",
            "target_issue_iid": 8,
            "link_type": "blocks",
        })

        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/issues/3/links"
        assert json.loads(gitlab.last.content) == {
            "target_project_id": "group/other",
            "target_issue_iid": 8,
            "link_type": "blocks",
        }

    @pytest.mark.asyncio
    async def test_delete_issue_link(self, registry, gitlab):
        gitlab.route("DELETE", "/api/v4/projects/1/issues/3/links/17", httpx.Response(204))

        result = await run(registry, "delete_issue_link", {"project_id": 1, "issue_iid": 3, "issue_link_id": 17})

        assert result_text(result) == "Issue link deleted successfully"


class TestJobHandlers:

    @pytest.mark.asyncio
    async def test_job_output_is_raw_trace(self, registry, gitlab):
        gitlab.route(
            "GET", "/api/v4/projects/1/jobs/9/trace",
            httpx.Response(200, text="$ make test\nok\n"),
        )

        result = await run(registry, "get_pipeline_job_output", {"project_id": 1, "job_id": 9})

        assert result_text(result) == "$ make test\nok\n"

    @pytest.mark.asyncio
    async def test_play_job_with_variables(self, registry, gitlab):
        await run(registry, "play_pipeline_job", {
            "project_id": 1,
            "job_id": 9,
            "job_variables_attributes": [{"key": "DEPLOY_ENV", "value": "staging"}],
        })

        assert gitlab.last.method == "POST"
        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/jobs/9/play"
        assert json.loads(gitlab.last.content) == {
            "job_variables_attributes": [{"key": "DEPLOY_ENV", "value": "staging"}],
        }

    @pytest.mark.asyncio
    async def test_retry_and_cancel_job(self, registry, gitlab):
        await run(registry, "retry_pipeline_job", {"project_id": 1, "job_id": 9})
        await run(registry, "cancel_pipeline_job", {"project_id": 1, "job_id": 9})

        paths = [request.url.raw_path for request in gitlab.requests]
        assert paths == [b"/api/v4/projects/1/jobs/9/retry", b"/api/v4/projects/1/jobs/9/cancel"]

    def test_job_writes_skipped_in_read_only_mode(self, client):
        registry = OperationRegistry()
        skipped = register_all_operations(
            registry, client, settings_with(read_only_mode=True, flags={"use_pipeline": True})
        )

        assert {"retry_pipeline_job", "cancel_pipeline_job", "play_pipeline_job"} <= set(skipped)
        assert registry.has_operation("get_pipeline_job_output")


class TestLabelAndGroupHandlers:

    @pytest.mark.asyncio
    async def test_get_label_by_name(self, registry, gitlab):
        await run(registry, "get_label", {"project_id": 1, "label_id": "needs review"})

        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/labels/needs%20review"

    @pytest.mark.asyncio
    async def test_update_label_body(self, registry, gitlab):
        await run(registry, "update_label", {"project_id": 1, "label_id": 12, "new_name": "bug", "color": "#FF0000"})

        assert gitlab.last.method == "PUT"
        assert gitlab.last.url.raw_path == b"/api/v4/projects/1/labels/12"
        assert json.loads(gitlab.last.content) == {"new_name": "bug", "color": "#FF0000"}

    @pytest.mark.asyncio
    async def test_delete_label(self, registry, gitlab):
        gitlab.route("DELETE", "/api/v4/projects/1/labels/12", httpx.Response(204))

        result = await run(registry, "delete_label", {"project_id": 1, "label_id": 12})

        assert result_text(result) == "Label deleted successfully"

    @pytest.mark.asyncio
    async def test_list_group_projects(self, registry, gitlab):
        await run(registry, "list_group_projects", {"group_id": "acme/platform", "archived": False})

        assert gitlab.last.url.raw_path.startswith(b"/api/v4/groups/acme%2Fplatform/projects?")
        assert gitlab.last.url.params["archived"] == "false"


class TestSearchHandlers:

    def test_search_operation_names(self, registry):
        names = [op.name for op in registry.list_operations("search")]

        assert names == ["global_search", "group_search", "project_search"]
        assert not registry.has_operation("search_global")
        assert not registry.has_operation("search_project")

    @pytest.mark.asyncio
    async def test_global_search(self, registry, gitlab):
        await run(registry, "global_search", {"scope": "issues", "search": "crash", "state": "opened"})

        assert gitlab.last.url.raw_path.startswith(b"/api/v4/search?")
        assert gitlab.last.url.params["scope"] == "issues"
        assert gitlab.last.url.params["state"] == "opened"

    @pytest.mark.asyncio
    async def test_group_search(self, registry, gitlab):
        await run(registry, "group_search", {"group_id": "acme", "scope": "merge_requests", "search": "fix"})

        assert gitlab.last.url.raw_path.startswith(b"/api/v4/groups/acme/search?")
        assert "group_id" not in gitlab.last.url.params
