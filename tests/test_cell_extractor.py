"""
Cell extractor tests

Runs the markdown-tree transform over trees parsed with markdown-it and
checks the recorded cells and the placeholders left behind.
"""

import pytest
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from cellmark.config import AppSettings
from cellmark.lib.extractor import cell_extractor, fenceInfo_parse
from cellmark.models import CellRecord, CompileStage, PipelineState


def tree_parse(source: str) -> SyntaxTreeNode:
    return SyntaxTreeNode(MarkdownIt("commonmark").parse(source))


def state_parsing() -> PipelineState:
    """State as the orchestrator leaves it before the markdown phase"""
    state = PipelineState()
    state.stage_advance(CompileStage.PARSING)
    return state


def extract(source: str, settings: AppSettings = None) -> tuple[PipelineState, SyntaxTreeNode]:
    state = state_parsing()
    tree = tree_parse(source)
    if settings:
        cell_extractor(state, settings)(tree)
    else:
        cell_extractor(state)(tree)
    return state, tree


def placeholders_find(tree: SyntaxTreeNode) -> list[SyntaxTreeNode]:
    return [
        node
        for node in tree.walk()
        if node.type == "html_block" and "cell-placeholder" in node.content
    ]


class TestSingleCell:
    """Test extraction of one cell"""

    def test_cell_recorded(self):
        """Cell body is recorded without the trailing newline"""
        state, _ = extract("# Head\n```cell\nlet x = 1\n```\n")

        assert state.cells == [CellRecord(id="cell-0", body="let x = 1", lang="", line=2)]

    def test_fence_replaced_by_placeholder(self):
        """The fence node becomes an html_block carrying the id"""
        state, tree = extract("```cell\nlet x = 1\n```\n")

        assert [node.type for node in tree.children] == ["html_block"]
        placeholder = tree.children[0]
        assert placeholder.content == (
            f'<cell-placeholder data-cell-id="cell-0" data-cell-nonce="{state.nonce}">'
            "</cell-placeholder>\n"
        )
        assert placeholder.token.meta == {"cellId": "cell-0"}
        assert "let x = 1" not in placeholder.content

    def test_stage_advanced(self):
        state, _ = extract("text\n")
        assert state.stage is CompileStage.EXTRACTING

    def test_empty_cell(self):
        """An empty cell still gets an id and an empty body"""
        state, tree = extract("```cell\n```\n")

        assert state.cells == [CellRecord(id="cell-0", body="", line=1)]
        assert len(placeholders_find(tree)) == 1

    def test_language_word(self):
        """The second info word is kept as the cell language"""
        state, _ = extract("```cell python\nprint(1)\n```\n")
        assert state.cells[0].lang == "python"

    def test_multiline_body(self):
        state, _ = extract("```cell\nline 1\n\nline 3\n```\n")
        assert state.cells[0].body == "line 1\n\nline 3"


class TestNonCells:
    """Test fences and blocks that are not cells"""

    def test_plain_code_fence_untouched(self):
        """Illustrative code samples stay code"""
        state, tree = extract("```python\nprint(1)\n```\n")

        assert state.cells == []
        assert tree.children[0].type == "fence"
        assert tree.children[0].content == "print(1)\n"

    def test_indented_code_untouched(self):
        state, tree = extract("    cell\n")
        assert state.cells == []
        assert tree.children[0].type == "code_block"

    def test_marker_must_be_first_word(self):
        state, _ = extract("```python cell\nx\n```\n")
        assert state.cells == []

    def test_no_cells_leaves_tree_unchanged(self):
        """Extraction on a cell-free document is a no-op on the tree"""
        source = "---\n\n# Title\n\nSome *text*.\n\n```js\nlet y\n```\n\n- a\n- b\n"
        before = [token.as_dict() for token in MarkdownIt("commonmark").parse(source)]

        state, tree = extract(source)

        assert state.cells == []
        assert [token.as_dict() for token in tree.to_tokens()] == before


class TestManyCells:
    """Test documents with several cells"""

    SOURCE = """# Notebook

```cell
first
```

Some text.

```python
not a cell
```

```cell
second
```

> ```cell
> third
> ```

- item

  ```cell
  fourth
  ```
"""

    def test_ids_unique(self):
        """N cells give N entries with pairwise distinct ids"""
        state, _ = extract(self.SOURCE)

        ids = state.cellIds_get()
        assert len(ids) == 4
        assert len(set(ids)) == 4

    def test_document_order(self):
        """Cells are recorded in source order, nested ones included"""
        state, _ = extract(self.SOURCE)

        assert [cell.body for cell in state.cells] == ["first", "second", "third", "fourth"]
        lines = [cell.line for cell in state.cells]
        assert lines == sorted(lines)

    def test_every_placeholder_has_a_cell(self):
        """Each placeholder carries the id of exactly one cell"""
        state, tree = extract(self.SOURCE)

        placeholder_ids = [node.token.meta["cellId"] for node in placeholders_find(tree)]
        assert placeholder_ids == state.cellIds_get()

    def test_nested_fence_not_extracted(self):
        """A cell fence inside a longer cell fence is part of the outer body"""
        state, _ = extract("````cell\n```cell\ninner\n```\n````\n")

        assert len(state.cells) == 1
        assert state.cells[0].body == "```cell\ninner\n```"


class TestIdentifiers:
    """Test identifier generation"""

    def test_existing_ids_skipped(self):
        """New ids never collide with ids already recorded"""
        state = state_parsing()
        state.cells.append(CellRecord(id="cell-0", body="seeded"))
        tree = tree_parse("```cell\nnew\n```\n")

        cell_extractor(state)(tree)

        assert state.cellIds_get() == ["cell-0", "cell-1"]

    def test_custom_prefix_and_markers(self):
        """Cell markers and id prefix come from settings"""
        settings = AppSettings(cell_languages=["svelte", "cell"], cell_id_prefix="Cell")
        state, _ = extract("```svelte\n<p>hi</p>\n```\n\n```cell\nx\n```\n", settings)

        assert state.cellIds_get() == ["Cell0", "Cell1"]


@pytest.mark.parametrize(
    "info, expected",
    [
        ("cell", ("cell", "")),
        ("cell python", ("cell", "python")),
        ("  cell   js extra ", ("cell", "js")),
        ("", ("", "")),
    ],
)
def test_fenceInfo_parse(info, expected):
    assert fenceInfo_parse(info) == expected
