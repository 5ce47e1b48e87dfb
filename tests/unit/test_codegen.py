from __future__ import annotations

import pytest

from athena.core import prompts
from athena.core.codegen import CodegenOptions, CodegenPipeline
from athena.core.commit_applier import GitCommitApplier
from athena.errors import (
    BlobCreationFailed,
    CodegenFailed,
    EmptyCompletion,
    NoChangesFound,
    UpstreamError,
)
from tests.support.fakes import FakeCompletion, FakeGitDataApi

COMPLETION = """Sure.
<page><path>/app/page.tsx</path><content>
export default function Home() { return <main>Todo</main> }
</content></page>
remove(app/legacy.tsx)
"""


def _repo_url(repo_id: str) -> str:
    return f"https://github.com/athena-service-account/{repo_id}.git"


def _pipeline(
    completion: FakeCompletion,
    api: FakeGitDataApi,
    *,
    notified: list[str] | None = None,
    include_repository_files: bool = True,
    context_chars: int = 60_000,
) -> CodegenPipeline:
    async def notifier(repo_id: str) -> None:
        if notified is None:
            raise UpstreamError("sandbox down")
        notified.append(repo_id)

    return CodegenPipeline(
        completion=completion,
        applier=GitCommitApplier(api),
        repo_url_for=_repo_url,
        options=CodegenOptions(
            model="claude-test",
            max_tokens=4000,
            include_repository_files=include_repository_files,
            context_chars=context_chars,
        ),
        reader=api,
        notifier=notifier,
    )


@pytest.mark.asyncio
async def test_generate_and_apply_commits_and_notifies_sandbox() -> None:
    api = FakeGitDataApi({"app/legacy.tsx": "old", "README.md": "# Todo"})
    completion = FakeCompletion(COMPLETION)
    notified: list[str] = []
    pipeline = _pipeline(completion, api, notified=notified)

    result = await pipeline.generate_and_apply("todo-12345", "Add a todo list", "A todo app")

    assert result.commit_sha == "commit-1"
    assert [(change.path, change.remove) for change in result.changes] == [
        ("app/page.tsx", False),
        ("app/legacy.tsx", True),
    ]
    assert api.commits["commit-1"]["message"] == prompts.commit_message("Add a todo list")
    assert "app/legacy.tsx" not in api.files
    assert notified == ["todo-12345"]

    request = completion.requests[0]
    assert request.system == prompts.CHANGE_REQUEST_SYSTEM_PROMPT
    assert request.max_tokens == 4000
    user_prompt = request.messages[0].content
    assert "Change Request: Add a todo list" in user_prompt
    assert "Project Context: A todo app" in user_prompt
    assert "File: README.md\n# Todo" in user_prompt


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_the_change() -> None:
    api = FakeGitDataApi()
    pipeline = _pipeline(FakeCompletion(COMPLETION), api, notified=None)

    result = await pipeline.generate_and_apply("todo-12345", "Add a todo list")

    assert result.commit_sha == "commit-1"


@pytest.mark.asyncio
async def test_zero_changes_raises_no_changes_found_and_commits_nothing() -> None:
    api = FakeGitDataApi()
    pipeline = _pipeline(FakeCompletion("I am not sure what you mean."), api, notified=[])

    with pytest.raises(CodegenFailed) as excinfo:
        await pipeline.generate_and_apply("todo-12345", "???")

    assert isinstance(excinfo.value.__cause__, NoChangesFound)
    assert excinfo.value.status_code == 422
    assert api.commits == {}


@pytest.mark.asyncio
async def test_blank_completion_is_rejected() -> None:
    pipeline = _pipeline(FakeCompletion("   \n"), FakeGitDataApi(), notified=[])

    with pytest.raises(CodegenFailed) as excinfo:
        await pipeline.generate_and_apply("todo-12345", "Add dark mode")

    assert isinstance(excinfo.value.cause, EmptyCompletion)
    assert excinfo.value.to_payload()["cause"] == "empty_completion"


@pytest.mark.asyncio
async def test_commit_failure_keeps_typed_cause() -> None:
    api = FakeGitDataApi(fail_blob_at=1)
    pipeline = _pipeline(FakeCompletion(COMPLETION), api, notified=[])

    with pytest.raises(CodegenFailed) as excinfo:
        await pipeline.generate_and_apply("todo-12345", "Add a todo list")

    assert isinstance(excinfo.value.cause, BlobCreationFailed)
    assert excinfo.value.status_code == 502
    assert api.head == "commit-0"


@pytest.mark.asyncio
async def test_completion_failure_is_not_retried() -> None:
    completion = FakeCompletion(UpstreamError("rate limited", status=429))
    pipeline = _pipeline(completion, FakeGitDataApi(), notified=[])

    with pytest.raises(CodegenFailed):
        await pipeline.generate_and_apply("todo-12345", "Add a todo list")

    assert len(completion.requests) == 1


@pytest.mark.asyncio
async def test_repository_files_can_be_left_out_of_the_prompt() -> None:
    api = FakeGitDataApi({"README.md": "# Todo"})
    completion = FakeCompletion(COMPLETION)
    pipeline = _pipeline(completion, api, notified=[], include_repository_files=False)

    await pipeline.generate_and_apply("todo-12345", "Add a todo list")

    assert "Current repository files" not in completion.requests[0].messages[0].content


@pytest.mark.asyncio
async def test_repository_snapshot_respects_budget_and_skips_binaries() -> None:
    api = FakeGitDataApi(
        {
            "a.ts": "a" * 10,
            "b.ts": "b" * 100,
            "logo.png": "binary",
            "package-lock.json": "{}",
        }
    )
    pipeline = _pipeline(FakeCompletion(COMPLETION), api, notified=[], context_chars=40)

    snapshot = await pipeline.repository_snapshot("todo-12345")

    assert snapshot == "File: a.ts\n" + "a" * 10


@pytest.mark.asyncio
async def test_preview_parses_file_blocks_without_committing() -> None:
    api = FakeGitDataApi({"app/page.tsx": "old"})
    completion = FakeCompletion(
        "<file><path>app/new/page.tsx</path>\nexport default 1\n</file>\nremove(app/page.tsx)"
    )
    pipeline = _pipeline(completion, api, notified=[])

    preview = await pipeline.preview("todo-12345", "Add a new page")

    assert [change.path for change in preview.changes] == ["app/new/page.tsx", "app/page.tsx"]
    assert preview.text.startswith("<file>")
    assert api.commits == {}
    request = completion.requests[0]
    assert request.system == prompts.PREVIEW_SYSTEM_PROMPT
    assert "File: app/page.tsx\nold" in request.messages[0].content


def test_commit_message_truncates_change_request() -> None:
    message = prompts.commit_message("x" * 80)

    assert message == "Athena: " + "x" * 50 + "..."


@pytest.mark.asyncio
async def test_unexpected_errors_are_wrapped_with_their_cause() -> None:
    api = FakeGitDataApi()
    crash = TypeError("create() got an unexpected keyword argument 'temperature'")
    pipeline = _pipeline(FakeCompletion(crash), api, notified=[])

    with pytest.raises(CodegenFailed) as excinfo:
        await pipeline.generate_and_apply("todo-12345", "Add a todo list")

    assert excinfo.value.cause is crash
    assert excinfo.value.__cause__ is crash
    assert excinfo.value.status_code == 500
    assert excinfo.value.to_payload()["cause"] == "TypeError"
    assert api.commits == {}


@pytest.mark.asyncio
async def test_preview_wraps_unexpected_errors() -> None:
    pipeline = _pipeline(FakeCompletion(KeyError("sha")), FakeGitDataApi(), notified=[])

    with pytest.raises(CodegenFailed) as excinfo:
        await pipeline.preview("todo-12345", "A todo app")

    assert isinstance(excinfo.value.cause, KeyError)


@pytest.mark.asyncio
async def test_repository_snapshot_skips_oversize_files_but_keeps_later_ones() -> None:
    api = FakeGitDataApi({"a.ts": "a" * 10, "b.ts": "b" * 100, "c.ts": "c" * 5})
    pipeline = _pipeline(FakeCompletion(COMPLETION), api, notified=[], context_chars=40)

    snapshot = await pipeline.repository_snapshot("todo-12345")

    assert snapshot == "File: a.ts\n" + "a" * 10 + "\n---\nFile: c.ts\n" + "c" * 5
