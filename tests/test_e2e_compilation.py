"""
End-to-end compilation tests

Tests the full pipeline: markdown source -> Compiler -> mode-shaped result

Validates the three output modes, failure propagation, and independence of
concurrent compile calls.
"""

import asyncio
import json

import pytest
from loguru import logger

from cellmark import compile
from cellmark.lib.compiler import Compiler, subComponents_build
from cellmark.lib.errors import (
    DocumentCompileError,
    FrontmatterParseError,
    RenderError,
)
from cellmark.lib.log import _program_state, state_connectToLogger
from cellmark.models import (
    CellRecord,
    CompileMode,
    CompileOptions,
    CompileStage,
    ComponentResult,
    PipelineState,
    RawResult,
    RenderedResult,
    SubComponent,
)


SCENARIO = "---\ntitle: Hi\n---\n# Head\n```cell\nlet x = 1\n```\n"

NOTEBOOK = """---
title: Notebook
tags: [demo]
---
# Analysis

```cell python
total = sum(range(10))
```

Plain sample, not a cell:

```python
print("hello")
```

```cell
<Chart data={total} />
```
"""


def run(source, options=None):
    return asyncio.run(compile(source, options))


class TestFullMode:
    """Test default mode: extraction, sub-components and rendering"""

    def test_scenario(self):
        """Frontmatter, one sub-component and a resolvable reference"""
        result = run(SCENARIO)

        assert isinstance(result, RenderedResult)
        assert result.frontMatter == {"title": "Hi"}
        assert result.subComponents == [SubComponent(path="./cell-0.svelte", code="let x = 1")]
        assert 'data-cell-src="./cell-0.svelte"' in result.html
        assert "let x = 1" in result.html
        assert "<h1>Head</h1>" in result.html
        assert "<title>Hi</title>" in result.html

    def test_no_references_left(self):
        """Rendering resolves every reference and every placeholder"""
        result = run(NOTEBOOK)

        assert "<cell-ref" not in result.html
        assert "<cell-placeholder" not in result.html
        assert result.html.count('<figure class="cell"') == 2

    def test_plain_code_kept(self):
        result = run(NOTEBOOK)
        assert '<code class="language-python">' in result.html

    def test_sub_components(self):
        result = run(NOTEBOOK)

        assert [sc.path for sc in result.subComponents] == ["./cell-0.svelte", "./cell-1.svelte"]
        assert result.subComponents[0].code == "total = sum(range(10))"
        assert result.subComponents[0].lang == "python"
        assert result.subComponents[1].code == "<Chart data={total} />"

    def test_default_title(self):
        result = run("# No metadata\n")
        assert "<title>cellmark</title>" in result.html

    def test_unknown_mode_is_full(self):
        """Any mode other than the two named ones selects full compile"""
        result = run(SCENARIO, {"mode": "something-else"})
        assert isinstance(result, RenderedResult)

    def test_stage_done(self):
        state = PipelineState()
        asyncio.run(Compiler().compile(SCENARIO, state=state))
        assert state.stage is CompileStage.DONE_RENDERED
        assert state.resolved == ["cell-0"]


class TestComponentMode:
    """Test mdsvex mode: compiled root without rendering"""

    def test_scenario(self):
        result = run(SCENARIO, {"mode": "mdsvex"})

        assert isinstance(result, ComponentResult)
        assert result.frontMatter == {"title": "Hi"}
        assert '<cell-ref src="./cell-0.svelte"></cell-ref>' in result.code
        assert "let x = 1" not in result.code

    def test_renderer_not_called(self):
        class FailingRenderer:
            def render(self, *args):
                raise AssertionError("renderer must not run in mdsvex mode")

        compiler = Compiler(renderer=FailingRenderer())
        result = asyncio.run(compiler.compile(SCENARIO, CompileOptions(mode=CompileMode.MDSVEX)))
        assert result.frontMatter == {"title": "Hi"}

    def test_mode_isolation(self):
        """Same frontMatter and cells under mdsvex and full modes"""
        component_state, full_state = PipelineState(), PipelineState()
        compiler = Compiler()

        component = asyncio.run(compiler.compile(NOTEBOOK, {"mode": "mdsvex"}, state=component_state))
        full = asyncio.run(compiler.compile(NOTEBOOK, {"mode": "full"}, state=full_state))

        assert component.frontMatter == full.frontMatter
        assert component_state.cells == full_state.cells
        assert subComponents_build(component_state.cells) == full.subComponents
        assert component_state.stage is CompileStage.DONE_COMPONENT

    def test_lookalike_placeholder_in_source(self):
        """Placeholder-shaped raw HTML in the document is ordinary markup"""
        lookalike = '<cell-placeholder data-cell-id="cell-0"></cell-placeholder>'
        result = run(f"Intro\n\n{lookalike}\n\n```cell\nx\n```\n", {"mode": "mdsvex"})

        assert lookalike in result.code
        assert result.code.count('<cell-ref src="./cell-0.svelte">') == 1


class TestRawMode:
    """Test mdsvex_input mode: diagnostic dumps"""

    def test_default_strategies(self):
        """All default strategies contribute a section"""
        result = run(SCENARIO, {"mode": "mdsvex_input"})

        assert isinstance(result, RawResult)
        sections = result.text.split("\n\n\n")
        assert len(sections) == 4
        assert sections[0].startswith("---\ntitle: Hi\n---\n")
        assert sections[1].startswith("<root>")
        assert "cell-placeholder" in sections[1]
        assert '"tagName": "cell-ref"' in result.text
        assert '<cell-ref src="./cell-0.svelte">' in result.text

    def test_markdown_text(self):
        """The markdown strategy dumps document text with cells already extracted"""
        result = run(SCENARIO, {"mode": "mdsvex_input", "diagnostics": ["markdown"]})

        frontmatter, heading, placeholder = result.text.split("\n\n")
        assert frontmatter == "---\ntitle: Hi\n---"
        assert heading == "# Head"
        assert placeholder.startswith('<cell-placeholder data-cell-id="cell-0" data-cell-nonce="')
        assert "let x = 1" not in result.text

    def test_markdown_tree_only(self):
        result = run(SCENARIO, {"mode": "mdsvex_input", "diagnostics": ["markdown_tree"]})

        assert "<heading>" in result.text
        assert "<front_matter>" in result.text
        assert "cell-ref" not in result.text

    def test_hypertext_json(self):
        """The JSON strategy dumps a hast-like tree"""
        result = run(SCENARIO, {"mode": "mdsvex_input", "diagnostics": ["hypertext_json"]})

        tree = json.loads(result.text)
        assert tree["type"] == "root"
        tags = [child.get("tagName") for child in tree["children"]]
        assert tags == ["h1", None, "cell-ref", None]
        reference = tree["children"][2]
        assert reference["properties"] == {"src": "./cell-0.svelte"}

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            CompileOptions(mode="mdsvex_input", diagnostics=("pretty-please",))

    def test_stage_done(self):
        state = PipelineState()
        asyncio.run(Compiler().compile(SCENARIO, {"mode": "mdsvex_input"}, state=state))
        assert state.stage is CompileStage.DONE_RAW


class TestFailures:
    """Test that every failure aborts the call and surfaces unchanged"""

    def test_malformed_frontmatter(self):
        """Scenario: unparsable metadata fails with FrontmatterParseError"""
        state = PipelineState()
        with pytest.raises(FrontmatterParseError):
            asyncio.run(Compiler().compile("---\nkey: [oops\n---\n# H\n", state=state))

        assert state.stage is CompileStage.FAILED
        assert isinstance(state.error, FrontmatterParseError)

    @pytest.mark.parametrize("mode", ["mdsvex_input", "mdsvex", "full"])
    def test_malformed_frontmatter_every_mode(self, mode):
        with pytest.raises(FrontmatterParseError):
            run("---\nkey: [oops\n---\n", {"mode": mode})

    def test_non_text_input(self):
        with pytest.raises(DocumentCompileError):
            run(None)

    def test_renderer_error_unchanged(self):
        """The renderer's exception object reaches the caller as is"""
        error = RenderError("boom")

        class BrokenRenderer:
            def render(self, *args):
                raise error

        state = PipelineState()
        with pytest.raises(RenderError) as info:
            asyncio.run(Compiler(renderer=BrokenRenderer()).compile(SCENARIO, state=state))

        assert info.value is error
        assert state.stage is CompileStage.FAILED

    def test_plugin_error_wrapped(self):
        """Unexpected engine failures surface as DocumentCompileError"""

        def broken(tree):
            raise KeyError("bad plugin")

        class BrokenEngine:
            async def compile(self, source, remarkPlugins=(), rehypePlugins=(), frontmatter=None):
                from cellmark.lib.engine import DocumentCompiler

                return await DocumentCompiler().compile(
                    source, [*remarkPlugins, broken], rehypePlugins, frontmatter
                )

        with pytest.raises(DocumentCompileError) as info:
            asyncio.run(Compiler(document_compiler=BrokenEngine()).compile(SCENARIO))
        assert isinstance(info.value.__cause__, KeyError)


class TestRendererInterface:
    """Test the orchestrator's side of the renderer contract"""

    def test_async_renderer(self):
        """Renderers may return an awaitable"""
        received = {}

        class AsyncRenderer:
            async def render(self, root, subComponents, frontMatter, options):
                received.update(root=root, subComponents=subComponents, options=options)
                await asyncio.sleep(0)
                return "<rendered/>"

        result = asyncio.run(Compiler(renderer=AsyncRenderer()).compile(SCENARIO))

        assert result.html == "<rendered/>"
        assert '<cell-ref src="./cell-0.svelte">' in received["root"].code
        assert received["subComponents"] == [SubComponent(path="./cell-0.svelte", code="let x = 1")]
        assert received["options"].mode is CompileMode.FULL


class TestConcurrency:
    """Test that concurrent compiles share no state"""

    def test_gather(self):
        sources = [f"---\nindex: {i}\n---\n" + f"```cell\nbody {i}\n```\n" * (i + 1) for i in range(5)]

        async def compile_all():
            return await asyncio.gather(*(compile(source) for source in sources))

        results = asyncio.run(compile_all())

        for i, result in enumerate(results):
            assert result.frontMatter == {"index": i}
            assert len(result.subComponents) == i + 1
            assert result.subComponents[0].path == "./cell-0.svelte"
            assert all(sc.code == f"body {i}" for sc in result.subComponents)


def test_subComponents_build():
    cells = [CellRecord(id="cell-0", body="a", lang="js"), CellRecord(id="cell-1", body="")]

    assert subComponents_build(cells) == [
        SubComponent(path="./cell-0.svelte", code="a", sourceMap="", lang="js"),
        SubComponent(path="./cell-1.svelte", code="", sourceMap="", lang=""),
    ]


@pytest.fixture
def error_messages():
    messages = []
    sink = logger.add(messages.append, level="ERROR", format="{message}")
    yield messages
    logger.remove(sink)


class TestLoggingContext:
    """Test failure logging and the logger context around a compile call"""

    def test_invalid_options_logged(self, error_messages):
        """Bad options fail the call through the same logged path as other errors"""
        state = PipelineState()
        options = {"mode": "mdsvex_input", "diagnostics": ["bogus"]}

        with pytest.raises(ValueError):
            asyncio.run(Compiler().compile(SCENARIO, options, state=state))

        assert state.stage is CompileStage.FAILED
        assert isinstance(state.error, ValueError)
        assert any("Compilation failed in stage idle" in m for m in error_messages)

    def test_compile_error_logged(self, error_messages):
        with pytest.raises(FrontmatterParseError):
            run("---\nkey: [oops\n---\n")
        assert any("Compilation failed in stage parsing" in m for m in error_messages)

    def test_caller_state_restored(self):
        """After a compile call the caller's logging state is connected again"""
        outer = PipelineState(verbosity=0)

        async def caller():
            state_connectToLogger(outer)
            await compile(SCENARIO)
            after_success = _program_state.get()
            with pytest.raises(FrontmatterParseError):
                await compile("---\nkey: [oops\n---\n")
            return after_success, _program_state.get()

        after_success, after_failure = asyncio.run(caller())

        assert after_success is outer
        assert after_failure is outer
