from __future__ import annotations

import json
from pathlib import Path

from athena.core.scaffold import NEXT_VERSION, render_template, write_template


def test_template_contains_next_project_files() -> None:
    files = render_template("Todo-12345", "Todo", "A todo app")

    assert set(files) >= {
        "package.json",
        "next.config.js",
        "tsconfig.json",
        "app/layout.tsx",
        "app/page.tsx",
        "app/globals.css",
    }
    manifest = json.loads(files["package.json"])
    assert manifest["name"] == "todo-12345"
    assert manifest["scripts"]["dev"] == "next dev"
    assert manifest["dependencies"]["next"] == NEXT_VERSION


def test_user_text_is_escaped_in_generated_sources() -> None:
    overview = 'Track <b>tasks</b> & {chores} "fast"'
    files = render_template("todo-12345", "Todo {v2}", overview)

    page = files["app/page.tsx"]
    assert "Todo &#123;v2&#125;" in page
    assert "Track &lt;b&gt;tasks&lt;/b&gt; &amp; &#123;chores&#125;" in page
    assert "<b>" not in page

    layout = files["app/layout.tsx"]
    assert f"description: {json.dumps(overview)}," in layout
    assert 'title: "Todo {v2}",' in layout


def test_layout_description_is_truncated() -> None:
    layout = render_template("todo-12345", "Todo", "x" * 400)["app/layout.tsx"]

    assert f'description: "{"x" * 160}",' in layout


def test_write_template_creates_nested_files(tmp_path: Path) -> None:
    written = write_template(tmp_path, "todo-12345", "Todo", "A todo app")

    assert (tmp_path / "app" / "page.tsx").is_file()
    assert (tmp_path / "public" / ".gitkeep").read_text() == ""
    assert len(written) == len(render_template("todo-12345", "Todo", "A todo app"))
