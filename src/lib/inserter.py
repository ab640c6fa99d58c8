"""
Cell insertion (hypertext-tree transform)

Finds the placeholders the cell extractor left in the document and turns
each into a reference to the sub-component built from that cell:

    <cell-placeholder data-cell-id="cell-0" data-cell-nonce="..."></cell-placeholder>
        ->  <cell-ref src="./cell-0.svelte"></cell-ref>

Every placeholder must match exactly one extracted cell and every extracted
cell must be met exactly once. Anything else means extraction and insertion
fell out of step, and raises OrphanPlaceholderError.

Only tags stamped with the call's nonce are placeholders. Lookalike tags
written into the document as raw HTML are left alone.
"""

from typing import Callable, Dict, Optional

from bs4 import BeautifulSoup

from .errors import OrphanPlaceholderError
from .log import LOG
from ..config import appsettings, AppSettings
from ..models.cells import CellRecord
from ..models.state import CompileStage, PipelineState


def cell_inserter(
    state: PipelineState, settings: AppSettings = appsettings
) -> Callable[[BeautifulSoup], Optional[BeautifulSoup]]:
    """
    Create the cell insertion transform for one compile call.

    Args:
        state: PipelineState holding the cells recorded by the extractor
        settings: Placeholder and reference markup

    Returns:
        Hypertext-tree transform that mutates the tree in place
    """

    def cells_insert(tree: BeautifulSoup) -> None:
        state.stage_advance(CompileStage.CONVERTING)
        state.stage_advance(CompileStage.INSERTING)

        known: Dict[str, CellRecord] = {cell.id: cell for cell in state.cells}

        placeholders = tree.find_all(
            settings.placeholder_tag, attrs={settings.placeholder_nonce_attribute: state.nonce}
        )
        for placeholder in placeholders:
            cell_id = placeholder.get(settings.placeholder_attribute)
            if cell_id not in known:
                raise OrphanPlaceholderError(cell_id, "no extracted cell has this id")
            if cell_id in state.resolved:
                raise OrphanPlaceholderError(cell_id, "placeholder appears more than once")

            reference = tree.new_tag(
                settings.reference_tag,
                attrs={settings.reference_attribute: settings.componentPath_make(cell_id)},
            )
            placeholder.replace_with(reference)
            state.resolved.append(cell_id)

        unresolved = [cell_id for cell_id in known if cell_id not in state.resolved]
        if unresolved:
            raise OrphanPlaceholderError(
                unresolved[0], f"placeholder lost before insertion ({len(unresolved)} unresolved)"
            )

        LOG(f"Inserted {len(state.resolved)} cell references", level=2)

    return cells_insert
