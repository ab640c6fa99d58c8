"""
Cell extraction (markdown-tree transform)

Walks the markdown tree depth-first and pulls every fenced block marked as
a cell out of the document. Each cell gets a fresh id, its body is recorded
on the PipelineState, and its fence is replaced by an HTML placeholder that
renders to a bare marker tag instead of the cell body.

Example:
    Source:
        ```cell python
        x = 1
        ```
    After extraction:
        state.cells == [CellRecord(id="cell-0", body="x = 1", lang="python", line=1)]
        fence token -> html_block
            '<cell-placeholder data-cell-id="cell-0" data-cell-nonce="..."></cell-placeholder>'
"""

from typing import Callable, Optional, Tuple

from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode

from .log import LOG
from ..config import appsettings, AppSettings
from ..models.cells import CellRecord
from ..models.state import CompileStage, PipelineState


def fenceInfo_parse(info: str) -> Tuple[str, str]:
    """
    Split a fence info string into its marker word and language word.

    Example:
        >>> fenceInfo_parse("cell python title=x")
        ('cell', 'python')
        >>> fenceInfo_parse("")
        ('', '')
    """
    words = info.split()
    marker = words[0] if words else ""
    lang = words[1] if len(words) > 1 else ""
    return marker, lang


def cell_isMarked(node: SyntaxTreeNode, settings: AppSettings = appsettings) -> bool:
    if node.type != "fence":
        return False
    marker, _ = fenceInfo_parse(node.info)
    return marker in settings.cell_languages


def body_normalize(content: str) -> str:
    """Drop the single trailing newline markdown-it keeps on fence content"""
    if content.endswith("\n"):
        return content[:-1]
    return content


def placeholder_token(
    original: Token, cell_id: str, nonce: str = "", settings: AppSettings = appsettings
) -> Token:
    """Build the html_block token that stands in for an extracted cell"""
    return Token(
        type="html_block",
        tag="",
        nesting=0,
        map=original.map,
        level=original.level,
        content=settings.placeHolder_make(cell_id, nonce) + "\n",
        block=True,
        meta={"cellId": cell_id},
    )


def cell_extractor(
    state: PipelineState, settings: AppSettings = appsettings
) -> Callable[[SyntaxTreeNode], Optional[SyntaxTreeNode]]:
    """
    Create the cell extraction transform for one compile call.

    Args:
        state: PipelineState that collects the extracted cells
        settings: Cell markers and placeholder markup

    Returns:
        Markdown-tree transform that mutates the tree in place
    """

    def cells_extract(tree: SyntaxTreeNode) -> None:
        state.stage_advance(CompileStage.EXTRACTING)

        for node in tree.walk():
            if not cell_isMarked(node, settings):
                continue

            cell_id = state.cellId_next(settings.cell_id_prefix)
            _, lang = fenceInfo_parse(node.info)
            line = node.map[0] + 1 if node.map else 0

            state.cells.append(
                CellRecord(id=cell_id, body=body_normalize(node.content), lang=lang, line=line)
            )
            node.token = placeholder_token(node.token, cell_id, state.nonce, settings)
            LOG(f"Extracted {cell_id} from line {line}", level=3)

        LOG(f"Extracted {len(state.cells)} cells", level=2)

    return cells_extract
