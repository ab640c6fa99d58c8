"""
Renderer for compiled cellmark documents

Resolves every cell reference in a compiled root document against the
sub-components built from the extracted cells, highlights each cell body
with Pygments, and wraps the result in a standalone HTML document.
"""

from html import escape
from typing import Any, Dict, Mapping, Optional, Sequence

from bs4 import BeautifulSoup
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, TextLexer
from pygments.util import ClassNotFound

from .engine import CompiledDocument
from .errors import CompileError, RenderError
from .log import LOG
from ..config import appsettings, AppSettings
from ..models.cells import SubComponent


class HTMLRenderer:
    """
    Renders a compiled root document plus its sub-components to HTML

    Responsibilities:
    - Resolve <cell-ref> references by sub-component path
    - Highlight cell bodies
    - Build the final HTML document
    """

    def __init__(self, settings: AppSettings = appsettings) -> None:
        self.settings = settings

    def lexer_get(self, lang: str) -> Lexer:
        """Lexer for a cell language, plain text when unknown or empty"""
        if not lang:
            return TextLexer()
        try:
            return get_lexer_by_name(lang)
        except ClassNotFound:
            LOG(f"No lexer for '{lang}', using plain text", level=2)
            return TextLexer()

    def cell_highlight(self, component: SubComponent) -> str:
        formatter = HtmlFormatter(style=self.settings.pygments_style, noclasses=True)
        return highlight(component.code, self.lexer_get(component.lang), formatter)

    def references_resolve(self, soup: BeautifulSoup, subComponents: Sequence[SubComponent]) -> int:
        """
        Replace every cell reference with the rendered sub-component.

        Returns:
            Number of references resolved

        Raises:
            RenderError: If a reference points at no known sub-component
        """
        by_path: Dict[str, SubComponent] = {sc.path: sc for sc in subComponents}
        count = 0

        for reference in soup.find_all(self.settings.reference_tag):
            path = reference.get(self.settings.reference_attribute)
            if path not in by_path:
                raise RenderError(f"Cell reference to unknown sub-component: {path!r}")

            figure = soup.new_tag("figure", attrs={"class": "cell", "data-cell-src": path})
            figure.append(BeautifulSoup(self.cell_highlight(by_path[path]), "html.parser"))
            reference.replace_with(figure)
            count += 1

        return count

    def htmlDocument_build(self, content: str, frontMatter: Mapping[str, Any]) -> str:
        """
        Build complete HTML document around the rendered body

        Args:
            content: Rendered document body
            frontMatter: Document metadata; "title" sets the page title

        Returns:
            Complete HTML document
        """
        title = frontMatter.get("title") or self.settings.page_title

        html = f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{escape(str(title))}</title>
</head>
<body>
<main class="cellmark">
{content}
</main>
</body>
</html>"""

        return html

    def render(
        self,
        root: CompiledDocument,
        subComponents: Sequence[SubComponent],
        frontMatter: Optional[Mapping[str, Any]],
        options: Any = None,
    ) -> str:
        """
        Render the compiled document

        Args:
            root: Compiled root document (code holds cell references)
            subComponents: Sub-components in document order
            frontMatter: Document metadata
            options: Compile options of the call (unused by this renderer)

        Returns:
            Standalone HTML document

        Raises:
            RenderError: On unresolvable references or any rendering failure
        """
        try:
            soup = BeautifulSoup(root.code, "html.parser")
            count = self.references_resolve(soup, subComponents)
            LOG(f"Rendered {count} cells", level=2)
            return self.htmlDocument_build(str(soup), frontMatter or {})
        except CompileError:
            raise
        except Exception as e:
            raise RenderError(f"Rendering failed: {e}") from e
