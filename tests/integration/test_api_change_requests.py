from pathlib import Path

from fastapi.testclient import TestClient

from athena.api.app import create_app
from athena.api.deps import get_project_provisioner
from tests.support.fakes import FakeCompletion
from tests.support.harness import PlatformHarness, build_platform

CHANGE = """Here you go.
<page><path>app/about/page.tsx</path><content>export default function About() {}</content></page>
remove(README.md)
"""


def _client(harness: PlatformHarness) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_project_provisioner] = lambda: harness.provisioner
    return TestClient(app)


def test_change_request_commits_generated_files(tmp_path: Path) -> None:
    harness = build_platform(tmp_path, completion=FakeCompletion(CHANGE))
    client = _client(harness)

    response = client.post(
        "/api/v1/projects/todo-app-12345/change-requests",
        json={"changeRequest": "Add an about page", "projectContext": "Todo app"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Successfully applied 2 changes to todo-app-12345",
        "commitSha": "commit-1",
        "changes": [
            {"path": "app/about/page.tsx", "action": "created/updated"},
            {"path": "README.md", "action": "deleted"},
        ],
    }
    assert harness.repo.head == "commit-1"
    assert "README.md" not in harness.repo.files


def test_change_request_without_text_is_rejected(tmp_path: Path) -> None:
    harness = build_platform(tmp_path)
    client = _client(harness)

    blank = client.post(
        "/api/v1/projects/todo-app-12345/change-requests", json={"changeRequest": ""}
    )
    missing = client.post("/api/v1/projects/todo-app-12345/change-requests", json={})

    assert blank.status_code == 400
    assert missing.status_code == 400
    assert missing.json()["details"] == ["changeRequest: Field required"]
    assert harness.completion.requests == []


def test_unparseable_completion_is_422_and_commits_nothing(tmp_path: Path) -> None:
    harness = build_platform(tmp_path, completion=FakeCompletion("I cannot help with that."))
    client = _client(harness)

    response = client.post(
        "/api/v1/projects/todo-app-12345/change-requests",
        json={"changeRequest": "Add an about page"},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "codegen_failed"
    assert response.json()["cause"] == "no_changes_found"
    assert harness.repo.commits == {}


def test_codegen_preview_returns_text_and_parsed_changes(tmp_path: Path) -> None:
    harness = build_platform(tmp_path, completion=FakeCompletion(CHANGE))
    client = _client(harness)

    response = client.post(
        "/api/v1/projects/todo-app-12345/codegen/preview",
        json={"overview": "A todo app with an about page"},
    )

    assert response.status_code == 200
    assert response.json()["codegen"] == CHANGE
    assert [change["path"] for change in response.json()["changes"]] == [
        "app/about/page.tsx",
        "README.md",
    ]
    assert harness.repo.commits == {}
