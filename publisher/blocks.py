"""Markdown to document blocks, and blocks to Notion block objects.

The supported structure is a closed set of block kinds: headings (levels 1-3),
paragraphs, fenced/indented code and list items. Everything else markdown can
express (blockquotes, tables, rules, raw HTML) is skipped on purpose so the
mapping stays predictable.
"""

from dataclasses import dataclass
from typing import Any

from markdown_it import MarkdownIt


DEFAULT_TITLE = "New Note"

# Notion rejects rich text objects longer than this
RICH_TEXT_LIMIT = 2000

NOTION_CODE_LANGUAGES = frozenset({
    "abap", "arduino", "bash", "basic", "c", "clojure", "coffeescript", "c++",
    "c#", "css", "dart", "diff", "docker", "elixir", "elm", "erlang", "flow",
    "fortran", "f#", "gherkin", "glsl", "go", "graphql", "groovy", "haskell",
    "html", "java", "javascript", "json", "julia", "kotlin", "latex", "less",
    "lisp", "livescript", "lua", "makefile", "markdown", "markup", "matlab",
    "mermaid", "nix", "objective-c", "ocaml", "pascal", "perl", "php",
    "plain text", "powershell", "prolog", "protobuf", "python", "r", "reason",
    "ruby", "rust", "sass", "scala", "scheme", "scss", "shell", "sql", "swift",
    "typescript", "vb.net", "verilog", "vhdl", "visual basic", "webassembly",
    "xml", "yaml",
})

LANGUAGE_ALIASES = {
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "sh": "shell",
    "zsh": "shell",
    "yml": "yaml",
    "cpp": "c++",
    "csharp": "c#",
    "golang": "go",
    "rs": "rust",
    "rb": "ruby",
    "dockerfile": "docker",
    "md": "markdown",
    "text": "plain text",
    "txt": "plain text",
}


def rich_text(content: str) -> list[dict[str, Any]]:
    """Notion rich text array for plain ``content``, split at the length limit."""
    chunks = [content[i:i + RICH_TEXT_LIMIT] for i in range(0, len(content), RICH_TEXT_LIMIT)]
    return [{"type": "text", "text": {"content": chunk}} for chunk in chunks]


def notion_language(language: str | None) -> str:
    """Map a fence info string onto a language Notion accepts."""
    lang = (language or "").strip().split(" ")[0].lower()
    lang = LANGUAGE_ALIASES.get(lang, lang)
    return lang if lang in NOTION_CODE_LANGUAGES else "plain text"


@dataclass(frozen=True)
class Heading:
    level: int
    text: str

    def to_notion(self) -> dict[str, Any]:
        kind = f"heading_{min(max(self.level, 1), 3)}"
        return {"object": "block", "type": kind, kind: {"rich_text": rich_text(self.text)}}


@dataclass(frozen=True)
class Paragraph:
    text: str

    def to_notion(self) -> dict[str, Any]:
        return {"object": "block", "type": "paragraph", "paragraph": {"rich_text": rich_text(self.text)}}


@dataclass(frozen=True)
class CodeBlock:
    text: str
    language: str = ""

    def to_notion(self) -> dict[str, Any]:
        return {
            "object": "block",
            "type": "code",
            "code": {
                "rich_text": rich_text(self.text),
                "language": notion_language(self.language),
            },
        }


@dataclass(frozen=True)
class ListItem:
    text: str
    ordered: bool = False

    def to_notion(self) -> dict[str, Any]:
        kind = "numbered_list_item" if self.ordered else "bulleted_list_item"
        return {"object": "block", "type": kind, kind: {"rich_text": rich_text(self.text)}}


Block = Heading | Paragraph | CodeBlock | ListItem


def markdown_to_blocks(markdown: str) -> list[Block]:
    """Parse markdown into the supported block kinds.

    Headings deeper than level 3 are clamped to 3. Nested list items are
    flattened in document order; extra paragraphs of a list item are joined to
    the item's text.
    """
    tokens = MarkdownIt("commonmark").parse(markdown or "")
    blocks: list[Block] = []

    # Open containers: "bullet", "ordered" or "quote"
    containers: list[str] = []
    # Index into ``blocks`` of the ListItem emitted for each open list item
    items: list[int | None] = []

    for i, token in enumerate(tokens):
        kind = token.type
        inline = tokens[i + 1].content if i + 1 < len(tokens) and tokens[i + 1].type == "inline" else ""
        in_quote = "quote" in containers

        if kind == "bullet_list_open":
            containers.append("bullet")
        elif kind == "ordered_list_open":
            containers.append("ordered")
        elif kind == "blockquote_open":
            containers.append("quote")
        elif kind in ("bullet_list_close", "ordered_list_close", "blockquote_close"):
            if containers:
                containers.pop()
        elif kind == "list_item_open":
            items.append(None)
        elif kind == "list_item_close":
            if items:
                items.pop()
        elif in_quote:
            continue
        elif kind == "heading_open":
            blocks.append(Heading(level=min(int(token.tag[1:]), 3), text=inline.strip()))
        elif kind == "paragraph_open":
            text = inline.strip()
            if items:
                idx = items[-1]
                if idx is None:
                    ordered = _innermost_list(containers) == "ordered"
                    blocks.append(ListItem(text=text, ordered=ordered))
                    items[-1] = len(blocks) - 1
                else:
                    prev = blocks[idx]
                    blocks[idx] = ListItem(text=f"{prev.text}\n{text}", ordered=prev.ordered)
            elif text:
                blocks.append(Paragraph(text=text))
        elif kind in ("fence", "code_block"):
            blocks.append(CodeBlock(text=token.content.rstrip("\n"), language=token.info.strip()))
        # hr, html_block, tables: skipped

    return blocks


def _innermost_list(containers: list[str]) -> str | None:
    for c in reversed(containers):
        if c in ("bullet", "ordered"):
            return c
    return None


def split_title(blocks: list[Block], explicit_title: str | None = None) -> tuple[str, list[Block]]:
    """Pick the page title and the body blocks.

    An explicit title wins and the body is left untouched. Otherwise a leading
    H1 becomes the title and is dropped from the body so it is not duplicated.
    Without either the title is ``DEFAULT_TITLE``.
    """
    explicit = (explicit_title or "").strip()
    if explicit:
        return explicit, list(blocks)
    if blocks and isinstance(blocks[0], Heading) and blocks[0].level == 1 and blocks[0].text:
        return blocks[0].text, list(blocks[1:])
    return DEFAULT_TITLE, list(blocks)
