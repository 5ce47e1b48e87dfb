from hypothesis import given
from hypothesis import strategies as st

from athena.core.change_parser import normalize_path, parse_file_changes

paths = st.from_regex(r"[a-z][a-z0-9_]{0,8}(/[a-z][a-z0-9_]{0,8}){0,2}\.tsx", fullmatch=True)
bodies = st.text(alphabet="abcdefghij {};=\n", max_size=40)
prose = st.text(alphabet="xyz .,:\n", max_size=20)


def _block(kind: str, path: str, body: str) -> str:
    if kind == "page":
        return f"<page><path>{path}</path><content>{body}</content></page>"
    return f"<file><path>{path}</path>\n{body}\n</file>"


@given(
    st.lists(st.tuples(st.sampled_from(["page", "file"]), paths, bodies), max_size=4),
    st.lists(paths, max_size=3),
    prose,
)
def test_blocks_and_removes_are_recovered_in_order(
    blocks: list[tuple[str, str, str]], removes: list[str], filler: str
) -> None:
    text = "".join(filler + _block(kind, path, body) for kind, path, body in blocks)
    text += "".join(f"{filler}remove({path})" for path in removes) + filler

    changes = parse_file_changes(text)

    assert [(change.path, change.content, change.remove) for change in changes] == [
        (path, body.strip(), False) for _, path, body in blocks
    ] + [(path, None, True) for path in removes]


@given(paths, st.text(alphabet=" \t", max_size=3))
def test_one_leading_slash_and_padding_are_dropped(path: str, padding: str) -> None:
    assert normalize_path(f"{padding}/{path}{padding}") == path
    assert normalize_path(path) == path
