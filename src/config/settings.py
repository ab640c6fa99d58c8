"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use CELLMARK_ prefix (e.g., CELLMARK_DEBUG_MODE=true).

Settings can also be loaded from a .env file in the project root.
"""

from html import escape

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use CELLMARK_ prefix. List values are given as JSON.

    Examples:
        CELLMARK_CELL_LANGUAGES='["cell", "svelte"]'
        CELLMARK_COMPONENT_EXTENSION=html
        CELLMARK_DEBUG_MODE=true
    """

    model_config = SettingsConfigDict(
        env_prefix="CELLMARK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Cell extraction
    cell_languages: list[str] = Field(
        default=["cell"],
        description="Fence info words that mark a fenced block as an embedded cell",
    )

    cell_id_prefix: str = Field(
        default="cell-",
        description="Prefix for generated cell identifiers (followed by a counter)",
    )

    # Placeholder and reference markup
    placeholder_tag: str = Field(
        default="cell-placeholder",
        description="Tag name of the marker left in place of an extracted cell",
    )

    placeholder_attribute: str = Field(
        default="data-cell-id",
        description="Attribute of the placeholder tag carrying the cell id",
    )

    placeholder_nonce_attribute: str = Field(
        default="data-cell-nonce",
        description="Attribute of the placeholder tag carrying the per-call nonce",
    )

    reference_tag: str = Field(
        default="cell-ref",
        description="Tag name of the reference that replaces a placeholder",
    )

    reference_attribute: str = Field(
        default="src",
        description="Attribute of the reference tag carrying the sub-component path",
    )

    component_extension: str = Field(
        default="svelte",
        description="File extension of derived sub-component paths",
    )

    # Frontmatter
    frontmatter_marker: str = Field(
        default="-",
        description="Character repeated (3+ times) to fence the frontmatter block",
    )

    frontmatter_type: str = Field(
        default="yaml",
        description="Frontmatter syntax: yaml or toml",
    )

    # Diagnostics
    diagnostics: list[str] = Field(
        default=["markdown", "markdown_tree", "hypertext_json", "hypertext"],
        description="Diagnostic serialization strategies used by mdsvex_input mode",
    )

    # Rendering
    pygments_style: str = Field(
        default="default",
        description="Pygments style used to highlight cell bodies",
    )

    page_title: str = Field(
        default="cellmark",
        description="Document title used when the frontmatter has none",
    )

    debug_mode: bool = Field(
        default=False,
        description="Enable debug output during compilation",
    )

    def placeHolder_make(self, cell_id: str, nonce: str = "") -> str:
        """
        Generate the placeholder markup for an extracted cell.

        The nonce ties the placeholder to one compile call, so raw HTML that
        merely looks like a placeholder is never mistaken for one.

        Args:
            cell_id: Identifier of the extracted cell
            nonce: Per-call nonce (PipelineState.nonce); omitted when empty

        Returns:
            Placeholder HTML string

        Example:
            >>> settings = AppSettings()
            >>> settings.placeHolder_make('cell-0')
            '<cell-placeholder data-cell-id="cell-0"></cell-placeholder>'
            >>> settings.placeHolder_make('cell-0', 'ab12')
            '<cell-placeholder data-cell-id="cell-0" data-cell-nonce="ab12"></cell-placeholder>'
        """
        attrs = f'{self.placeholder_attribute}="{escape(cell_id)}"'
        if nonce:
            attrs += f' {self.placeholder_nonce_attribute}="{escape(nonce)}"'
        return f"<{self.placeholder_tag} {attrs}></{self.placeholder_tag}>"

    def componentPath_make(self, cell_id: str) -> str:
        """
        Derive the sub-component path for a cell id.

        Example:
            >>> AppSettings().componentPath_make('cell-0')
            './cell-0.svelte'
        """
        return f"./{cell_id}.{self.component_extension}"


# Singleton instance - import this in your code
appsettings = AppSettings()
