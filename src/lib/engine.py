"""
Markdown engine for cellmark documents

Drives a document through its two tree representations:

1. Markdown tree: markdown-it-py tokens wrapped in a SyntaxTreeNode.
   Remark plugins (markdown-tree transforms) run here.
2. Hypertext tree: the HTML the markdown tree renders to, parsed with
   BeautifulSoup. Rehype plugins (hypertext-tree transforms) run here.

Raw HTML blocks pass from the first tree to the second verbatim, which is
what lets a transform in phase 1 leave markers for a transform in phase 2.

Plugins are plain callables taking the current tree. A plugin may mutate
the tree in place (returning None) or return a replacement tree.

Example:
    >>> engine = DocumentCompiler()
    >>> doc = asyncio.run(engine.compile("# Hi"))
    >>> doc.code
    '<h1>Hi</h1>\\n'
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from bs4 import BeautifulSoup
from markdown_it import MarkdownIt
from markdown_it.rules_block import StateBlock
from markdown_it.tree import SyntaxTreeNode

from .errors import CompileError, DocumentCompileError
from .log import LOG


RemarkPlugin = Callable[[SyntaxTreeNode], Optional[SyntaxTreeNode]]
RehypePlugin = Callable[[BeautifulSoup], Optional[BeautifulSoup]]


@dataclass
class FrontmatterConfig:
    """
    How the engine recognizes and parses the frontmatter block

    Attributes:
        parse: Hook turning the raw block text into a structured value, or
               None to decline the block
        marker: Fence character, repeated 3+ times on its own line
        type: Syntax name, recorded on the front_matter token
    """
    parse: Callable[[str], Any]
    marker: str = "-"
    type: str = "yaml"

    def __post_init__(self) -> None:
        if len(self.marker) != 1:
            raise ValueError(f"Frontmatter marker must be one character, got {self.marker!r}")


@dataclass
class CompiledDocument:
    """
    Output of one engine run

    Attributes:
        code: Serialized hypertext tree (root component source)
    """
    code: str


def fence_match(line: str, marker: str) -> bool:
    """True if line is 3+ repetitions of marker (trailing whitespace allowed)"""
    line = line.rstrip()
    return len(line) >= 3 and line == marker * len(line)


def frontMatter_rule(config: FrontmatterConfig) -> Callable[[StateBlock, int, int, bool], bool]:
    """
    Build a block rule matching a fenced frontmatter block at document start.

    The opening fence must be the first line of the document; the block
    closes at the next line holding the same fence. An unclosed fence, or a
    block the parse hook declines, is not frontmatter and falls through to
    the other block rules.
    """

    def front_matter(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
        if startLine != 0 or state.blkIndent != 0 or state.parentType != "root":
            return False

        start = state.bMarks[startLine] + state.tShift[startLine]
        opening = state.src[start : state.eMarks[startLine]]
        if state.tShift[startLine] != 0 or not fence_match(opening, config.marker):
            return False
        opening = opening.rstrip()

        nextLine = startLine + 1
        while nextLine < endLine:
            start = state.bMarks[nextLine] + state.tShift[nextLine]
            line = state.src[start : state.eMarks[nextLine]]
            if state.tShift[nextLine] == 0 and line.rstrip() == opening:
                break
            nextLine += 1
        else:
            return False

        if silent:
            return True

        raw = state.getLines(startLine + 1, nextLine, 0, True)
        parsed = config.parse(raw)
        if parsed is None:
            return False

        token = state.push("front_matter", "", 0)
        token.hidden = True
        token.block = True
        token.content = raw
        token.markup = opening
        token.info = config.type
        token.map = [startLine, nextLine + 1]
        token.meta = {"frontMatter": parsed}

        state.line = nextLine + 1
        return True

    return front_matter


def frontMatter_render(self, tokens, idx, options, env) -> str:
    return ""


class DocumentCompiler:
    """
    Compiles markdown to a hypertext tree through plugin hook points

    Each compile() call builds its own MarkdownIt instance, so one
    DocumentCompiler can serve any number of concurrent calls.
    """

    def __init__(self, preset: str = "commonmark", enable: Sequence[str] = ("table",)) -> None:
        """
        Args:
            preset: markdown-it preset name
            enable: Extra markdown-it rules to enable on top of the preset
        """
        self.preset = preset
        self.enable = list(enable)

    def parser_build(self, frontmatter: Optional[FrontmatterConfig]) -> MarkdownIt:
        md = MarkdownIt(self.preset)
        if self.enable:
            md.enable(self.enable)
        if frontmatter is not None:
            md.block.ruler.before(
                "table",
                "front_matter",
                frontMatter_rule(frontmatter),
                {"alt": ["paragraph", "reference", "blockquote", "list"]},
            )
            md.add_render_rule("front_matter", frontMatter_render)
        return md

    async def compile(
        self,
        source: str,
        remarkPlugins: Sequence[RemarkPlugin] = (),
        rehypePlugins: Sequence[RehypePlugin] = (),
        frontmatter: Optional[FrontmatterConfig] = None,
    ) -> CompiledDocument:
        """
        Run source through both tree phases.

        Args:
            source: Markdown document text
            remarkPlugins: Markdown-tree transforms, run in order
            rehypePlugins: Hypertext-tree transforms, run in order
            frontmatter: Frontmatter recognition config (None disables it)

        Returns:
            CompiledDocument holding the serialized hypertext tree

        Raises:
            CompileError: Subclasses raised by hooks and plugins, unchanged
            DocumentCompileError: Any other failure inside the engine
        """
        if not isinstance(source, str):
            raise DocumentCompileError(
                f"Document source must be str, got {source.__class__.__name__}"
            )

        try:
            md = self.parser_build(frontmatter)
            env: Dict[str, Any] = {}

            tokens = md.parse(source, env)
            LOG(f"Parsed {len(tokens)} markdown tokens", level=3)

            tree = SyntaxTreeNode(tokens)
            for plugin in remarkPlugins:
                replacement = plugin(tree)
                if replacement is not None:
                    tree = replacement

            html = md.renderer.render(tree.to_tokens(), md.options, env)

            soup = BeautifulSoup(html, "html.parser")
            for plugin in rehypePlugins:
                replacement = plugin(soup)
                if replacement is not None:
                    soup = replacement

            return CompiledDocument(code=str(soup))
        except CompileError:
            raise
        except Exception as e:
            raise DocumentCompileError(f"Markdown engine failed: {e}") from e
