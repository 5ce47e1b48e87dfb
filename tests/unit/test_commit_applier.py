from __future__ import annotations

import json

import httpx
import pytest
import respx

from athena.clients.github import GitHubClient
from athena.core.commit_applier import GitCommitApplier, parse_repo_url
from athena.errors import BlobCreationFailed, InvalidRepoUrl, RefUpdateFailed
from athena.models.changes import FileChange
from tests.support.fakes import FakeGitDataApi

REPO_URL = "https://github.com/athena-service-account/todo-app-12345.git"
API = "https://api.github.com"
REPO_PATH = "/repos/athena-service-account/todo-app-12345"


def test_parse_repo_url_accepts_common_shapes() -> None:
    for url in (
        REPO_URL,
        "https://github.com/athena-service-account/todo-app-12345",
        "github.com/athena-service-account/todo-app-12345/",
    ):
        ref = parse_repo_url(url)
        assert ref.owner == "athena-service-account"
        assert ref.repo == "todo-app-12345"


def test_parse_repo_url_rejects_garbage() -> None:
    with pytest.raises(InvalidRepoUrl):
        parse_repo_url("not a url")


@pytest.mark.asyncio
async def test_apply_changes_creates_one_commit_on_previous_head() -> None:
    api = FakeGitDataApi({"app/old.tsx": "old"}, head="commit-0")
    applier = GitCommitApplier(api)

    sha = await applier.apply_changes(
        REPO_URL,
        [
            FileChange(path="app/page.tsx", content="page"),
            FileChange(path="app/old.tsx", remove=True),
        ],
        "Athena: add page...",
    )

    assert sha == "commit-1"
    assert api.head == "commit-1"
    assert api.commits["commit-1"]["parents"] == ["commit-0"]
    base_tree, entries = api.trees["tree-1"]
    assert base_tree == "commit-0"
    assert [entry["sha"] for entry in entries] == ["blob-1", None]
    assert api.files == {"app/page.tsx": "page"}


@pytest.mark.asyncio
async def test_removing_a_missing_file_is_a_no_op() -> None:
    api = FakeGitDataApi({"README.md": "hi"})
    applier = GitCommitApplier(api)

    await applier.apply_changes(REPO_URL, [FileChange(path="ghost.ts", remove=True)], "msg")

    _, entries = api.trees["tree-1"]
    assert entries == []
    assert api.files == {"README.md": "hi"}


@pytest.mark.asyncio
async def test_failing_middle_blob_leaves_branch_untouched() -> None:
    api = FakeGitDataApi({"README.md": "hi"}, head="commit-0", fail_blob_at=2)
    applier = GitCommitApplier(api)
    changes = [FileChange(path=f"app/f{i}.ts", content=str(i)) for i in range(4)]

    with pytest.raises(BlobCreationFailed):
        await applier.apply_changes(REPO_URL, changes, "msg")

    assert api.head == "commit-0"
    assert api.commits == {}
    assert "update_ref" not in api.calls


@pytest.mark.asyncio
async def test_atomic_commit_over_http() -> None:
    client = GitHubClient("token", base_url=API)
    applier = GitCommitApplier(client)
    changes = [FileChange(path=f"src/f{i}.ts", content=str(i)) for i in range(4)]
    blob_calls = 0

    def blob_response(request: httpx.Request) -> httpx.Response:
        nonlocal blob_calls
        blob_calls += 1
        if blob_calls == 2:
            return httpx.Response(500, text="blob storage down")
        return httpx.Response(201, json={"sha": f"blob-{blob_calls}"})

    with respx.mock(base_url=API, assert_all_called=False) as mock:
        mock.get(f"{REPO_PATH}/branches/main").respond(
            200, json={"commit": {"sha": "head-sha"}}
        )
        mock.post(f"{REPO_PATH}/git/blobs").mock(side_effect=blob_response)
        tree = mock.post(f"{REPO_PATH}/git/trees")
        commit = mock.post(f"{REPO_PATH}/git/commits")
        ref = mock.patch(f"{REPO_PATH}/git/refs/heads/main")

        with pytest.raises(BlobCreationFailed) as excinfo:
            await applier.apply_changes(REPO_URL, changes, "msg")

    assert excinfo.value.status == 500
    assert excinfo.value.body == "blob storage down"
    assert blob_calls == 2
    assert not tree.called
    assert not commit.called
    assert not ref.called


@pytest.mark.asyncio
async def test_commit_over_http_sends_expected_payloads() -> None:
    client = GitHubClient("token", base_url=API)
    applier = GitCommitApplier(client)

    with respx.mock(base_url=API) as mock:
        mock.get(f"{REPO_PATH}/branches/main").respond(
            200, json={"commit": {"sha": "head-sha"}}
        )
        mock.get(f"{REPO_PATH}/contents/app/old.tsx").respond(
            200, json={"type": "file", "sha": "old-sha"}
        )
        mock.post(f"{REPO_PATH}/git/blobs").respond(201, json={"sha": "blob-sha"})
        tree = mock.post(f"{REPO_PATH}/git/trees").respond(201, json={"sha": "tree-sha"})
        commit = mock.post(f"{REPO_PATH}/git/commits").respond(201, json={"sha": "new-sha"})
        ref = mock.patch(f"{REPO_PATH}/git/refs/heads/main").respond(200, json={})

        sha = await applier.apply_changes(
            REPO_URL,
            [
                FileChange(path="app/page.tsx", content="page"),
                FileChange(path="app/old.tsx", remove=True),
            ],
            "Athena: tweak...",
        )

    assert sha == "new-sha"
    tree_body = json.loads(tree.calls.last.request.content)
    assert tree_body["base_tree"] == "head-sha"
    assert tree_body["tree"] == [
        {"path": "app/page.tsx", "mode": "100644", "type": "blob", "sha": "blob-sha"},
        {"path": "app/old.tsx", "mode": "100644", "type": "blob", "sha": None},
    ]
    commit_body = json.loads(commit.calls.last.request.content)
    assert commit_body == {
        "message": "Athena: tweak...",
        "tree": "tree-sha",
        "parents": ["head-sha"],
    }
    assert json.loads(ref.calls.last.request.content) == {"sha": "new-sha", "force": False}


@pytest.mark.asyncio
async def test_non_fast_forward_surfaces_as_ref_update_failure() -> None:
    client = GitHubClient("token", base_url=API)
    applier = GitCommitApplier(client)

    with respx.mock(base_url=API) as mock:
        mock.get(f"{REPO_PATH}/branches/main").respond(
            200, json={"commit": {"sha": "head-sha"}}
        )
        mock.post(f"{REPO_PATH}/git/blobs").respond(201, json={"sha": "blob-sha"})
        mock.post(f"{REPO_PATH}/git/trees").respond(201, json={"sha": "tree-sha"})
        mock.post(f"{REPO_PATH}/git/commits").respond(201, json={"sha": "new-sha"})
        mock.patch(f"{REPO_PATH}/git/refs/heads/main").respond(
            422, json={"message": "Update is not a fast forward"}
        )

        with pytest.raises(RefUpdateFailed) as excinfo:
            await applier.apply_changes(REPO_URL, [FileChange(path="a", content="b")], "msg")

    assert excinfo.value.status == 422
    assert "fast forward" in excinfo.value.body
