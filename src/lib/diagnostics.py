"""
Diagnostic serialization of the intermediate trees

Each strategy snapshots one tree phase as text. Strategies are registered as
extra plugins that run after the cell extractor (markdown phase) or the cell
inserter (hypertext phase), so the dump shows the trees exactly as the
transforms left them.

Strategies:
    markdown:       the markdown tree serialized back to markdown text
    markdown_tree:  indented outline of the markdown tree, leaf contents included
    hypertext_json: JSON of the hypertext tree ({type, tagName, properties, children})
    hypertext:      prettified HTML of the hypertext tree
"""

import json
import textwrap
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from markdown_it import MarkdownIt
from markdown_it.renderer import RendererHTML
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode
from mdformat.renderer import MDRenderer

MARKDOWN_PHASE = "markdown"
HYPERTEXT_PHASE = "hypertext"

SECTION_SEPARATOR = "\n\n\n"


CONTENT_NODE_TYPES = frozenset(
    {"text", "code_inline", "html_inline", "html_block", "fence", "code_block", "front_matter"}
)


def markdownNode_dump(node: SyntaxTreeNode, indent: int = 2, depth: int = 0) -> str:
    """
    Indented outline of a markdown tree node and its descendants.

    Like SyntaxTreeNode.pretty(), but shows the raw content of every leaf
    that carries source text (placeholders and frontmatter included).
    """
    prefix = " " * depth
    text = f"{prefix}<{node.type}"
    if not node.is_root and node.attrs:
        text += " " + " ".join(f"{key}={value!r}" for key, value in node.attrs.items())
    if node.type == "fence" and node.info:
        text += f" info={node.info!r}"
    text += ">"

    if node.type in CONTENT_NODE_TYPES and node.content:
        text += "\n" + textwrap.indent(node.content.rstrip("\n"), prefix + " " * indent)
    for child in node.children:
        text += "\n" + markdownNode_dump(child, indent, depth + indent)
    return text


def markdownTree_dump(tree: SyntaxTreeNode) -> str:
    return markdownNode_dump(tree)


def tokens_renderable(tokens: List[Token]) -> List[Token]:
    """
    Prepare markdown tokens for MDRenderer.

    Drops the front_matter token and turns each table into an html_block
    holding its HTML, since the bare mdformat renderer has no table syntax.
    """
    result: List[Token] = []
    table: List[Token] = []
    for token in tokens:
        if token.type == "front_matter":
            continue
        if token.type == "table_open" or table:
            table.append(token)
            if token.type == "table_close":
                html = RendererHTML().render(table, MarkdownIt("commonmark").options, {})
                result.append(
                    Token(
                        type="html_block",
                        tag="",
                        nesting=0,
                        map=table[0].map,
                        level=table[0].level,
                        content=html,
                        block=True,
                    )
                )
                table = []
            continue
        result.append(token)
    return result


def markdownTree_toMarkdown(tree: SyntaxTreeNode) -> str:
    """Serialize the markdown tree back to markdown text, frontmatter fence included"""
    tokens = tree.to_tokens()
    options = {"mdformat": {}, "parser_extension": [], "codeformatters": {}}
    text = MDRenderer().render(tokens_renderable(tokens), options, {}).rstrip("\n")

    for token in tokens:
        if token.type == "front_matter":
            block = f"{token.markup}\n{token.content}{token.markup}"
            return f"{block}\n\n{text}" if text else block
    return text


def hypertextNode_toDict(node: Any) -> Dict[str, Any]:
    """Convert a BeautifulSoup node into a hast-like dict"""
    if isinstance(node, Comment):
        return {"type": "comment", "value": str(node)}
    if isinstance(node, NavigableString):
        return {"type": "text", "value": str(node)}
    if isinstance(node, BeautifulSoup):
        return {"type": "root", "children": [hypertextNode_toDict(c) for c in node.contents]}
    if isinstance(node, Tag):
        return {
            "type": "element",
            "tagName": node.name,
            "properties": {
                key: " ".join(value) if isinstance(value, list) else value
                for key, value in node.attrs.items()
            },
            "children": [hypertextNode_toDict(c) for c in node.contents],
        }
    return {"type": "unknown", "value": str(node)}


def hypertextTree_dumpJSON(tree: BeautifulSoup) -> str:
    return json.dumps(hypertextNode_toDict(tree), indent="\t", ensure_ascii=False)


def hypertextTree_dump(tree: BeautifulSoup) -> str:
    return tree.prettify()


@dataclass(frozen=True)
class DiagnosticStrategy:
    """
    A named tree serializer bound to one tree phase

    Attributes:
        name: Strategy name used in CompileOptions.diagnostics
        phase: MARKDOWN_PHASE or HYPERTEXT_PHASE
        dump: Function serializing the tree of that phase
    """
    name: str
    phase: str
    dump: Callable[[Any], str]


DIAGNOSTIC_STRATEGIES: Dict[str, DiagnosticStrategy] = {
    "markdown": DiagnosticStrategy("markdown", MARKDOWN_PHASE, markdownTree_toMarkdown),
    "markdown_tree": DiagnosticStrategy("markdown_tree", MARKDOWN_PHASE, markdownTree_dump),
    "hypertext_json": DiagnosticStrategy("hypertext_json", HYPERTEXT_PHASE, hypertextTree_dumpJSON),
    "hypertext": DiagnosticStrategy("hypertext", HYPERTEXT_PHASE, hypertextTree_dump),
}


class DiagnosticRecorder:
    """
    Collects diagnostic sections produced while a document compiles

    Example:
        recorder = DiagnosticRecorder(["markdown_tree", "hypertext"])
        remark, rehype = recorder.plugins_get()
        # register remark after the cell extractor, rehype after the inserter
        text = recorder.text_get()
    """

    def __init__(self, names: Sequence[str]) -> None:
        unknown = [name for name in names if name not in DIAGNOSTIC_STRATEGIES]
        if unknown:
            raise ValueError(f"Unknown diagnostic strategies: {', '.join(unknown)}")
        self.strategies = [DIAGNOSTIC_STRATEGIES[name] for name in names]
        self.sections: List[str] = []

    def plugin_make(self, strategy: DiagnosticStrategy) -> Callable[[Any], None]:
        def snapshot(tree: Any) -> None:
            self.sections.append(strategy.dump(tree))

        return snapshot

    def plugins_get(self) -> Tuple[List[Callable], List[Callable]]:
        """Return (remark plugins, rehype plugins) in strategy order per phase"""
        remark = [self.plugin_make(s) for s in self.strategies if s.phase == MARKDOWN_PHASE]
        rehype = [self.plugin_make(s) for s in self.strategies if s.phase == HYPERTEXT_PHASE]
        return remark, rehype

    def text_get(self) -> str:
        return SECTION_SEPARATOR.join(self.sections)
