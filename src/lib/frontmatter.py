"""
Frontmatter extraction

Builds the parse hook the markdown engine calls when it meets the fenced
metadata block at the top of a document. The hook turns the raw block
text into a mapping and records it on the call's PipelineState.

Example:
    >>> state = PipelineState()
    >>> parse = frontMatter_extractor(state)
    >>> parse("title: Hi\\n")
    {'title': 'Hi'}
    >>> state.frontMatter
    {'title': 'Hi'}
"""

import tomllib
from typing import Any, Callable, Dict, Optional

import yaml

from .errors import FrontmatterParseError
from .log import LOG
from ..models.state import PipelineState


def yaml_parse(raw: str) -> Any:
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line = mark.line + 1
        raise FrontmatterParseError(str(e), line=line) from e


def toml_parse(raw: str) -> Any:
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise FrontmatterParseError(str(e)) from e


FRONTMATTER_PARSERS: Dict[str, Callable[[str], Any]] = {
    "yaml": yaml_parse,
    "toml": toml_parse,
}


def frontMatter_extractor(
    state: PipelineState, type: str = "yaml"
) -> Callable[[str], Optional[Dict[str, Any]]]:
    """
    Create the frontmatter parse hook for one compile call.

    Args:
        state: PipelineState that receives the parsed mapping
        type: Frontmatter syntax, a key of FRONTMATTER_PARSERS

    Returns:
        parse(raw) -> mapping, suitable for FrontmatterConfig.parse. A block
        that parses to anything but a mapping (e.g. a thematic break followed
        by a paragraph) is declined with None and stays ordinary markdown.

    Raises:
        ValueError: If type is not a supported frontmatter syntax
    """
    if type not in FRONTMATTER_PARSERS:
        raise ValueError(f"Unsupported frontmatter type: {type}")
    parser = FRONTMATTER_PARSERS[type]

    def frontMatter_parse(raw: str) -> Optional[Dict[str, Any]]:
        if state.frontMatterSeen:
            raise FrontmatterParseError("document has more than one frontmatter block")

        data = parser(raw)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            LOG(f"Leading fenced block is a {data.__class__.__name__}, not frontmatter", level=1)
            return None

        state.frontMatter = data
        state.frontMatterSeen = True
        LOG(f"Frontmatter keys: {', '.join(map(str, data)) or '(none)'}", level=2)
        return data

    return frontMatter_parse
