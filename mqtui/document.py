"""Document model: loaded Markdown text plus its parsed node structure.

The structure is derived once per load with markdown-it-py and never mutated,
so it can be shared between the UI thread and the evaluation worker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from markdown_it import MarkdownIt
from markdown_it.token import Token

from .errors import StartupError

logger = logging.getLogger(__name__)

DEFAULT_STDIN_FILENAME = "stdin.md"

_BLOCK_OPEN_TYPES: dict[str, str] = {
    "heading_open": "heading",
    "paragraph_open": "paragraph",
    "bullet_list_open": "list",
    "ordered_list_open": "list",
    "list_item_open": "item",
    "blockquote_open": "blockquote",
    "table_open": "table",
    "tr_open": "row",
    "th_open": "cell",
    "td_open": "cell",
}
# Table sections only group rows; their rows are attached to the table directly.
_TRANSPARENT_OPEN_TYPES = {"thead_open", "tbody_open"}
_TRANSPARENT_CLOSE_TYPES = {"thead_close", "tbody_close"}


@dataclass(frozen=True)
class MdNode:
    """One Markdown element, block or inline."""

    type: str
    text: str = ""
    markdown: str = ""
    depth: int | None = None
    lang: str | None = None
    url: str | None = None
    title: str | None = None
    ordered: bool | None = None
    line: int | None = None
    children: tuple[MdNode, ...] = ()

    def walk(self):
        """Yield this node and all descendants in document order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class _Draft:
    type: str
    token: Token | None = None
    depth: int | None = None
    ordered: bool | None = None
    lang: str | None = None
    url: str | None = None
    title: str | None = None
    text: str | None = None
    markdown: str | None = None
    children: list[MdNode] = field(default_factory=list)


def _plain_text(children: tuple[MdNode, ...] | list[MdNode], separator: str = "") -> str:
    parts: list[str] = []
    for child in children:
        if child.type == "softbreak":
            parts.append(" ")
        else:
            parts.append(child.text)
    return separator.join(parts)


def _source_slice(lines: list[str], token: Token | None) -> tuple[str, int | None]:
    if token is None or not token.map:
        return "", None
    start, end = token.map
    return "\n".join(lines[start:end]).rstrip("\n"), start + 1


def _inline_nodes(tokens: list[Token]) -> list[MdNode]:
    """Fold markdown-it inline tokens into nested ``MdNode`` values."""
    root: list[MdNode] = []
    stack: list[tuple[_Draft, list[MdNode]]] = []

    def sink() -> list[MdNode]:
        return stack[-1][1] if stack else root

    for token in tokens:
        kind = token.type
        if kind == "text":
            if token.content:
                sink().append(MdNode(type="text", text=token.content, markdown=token.content))
        elif kind in {"softbreak", "hardbreak"}:
            sink().append(MdNode(type="softbreak", text="\n", markdown="\n"))
        elif kind == "code_inline":
            sink().append(
                MdNode(type="inline_code", text=token.content, markdown=f"`{token.content}`")
            )
        elif kind == "html_inline":
            sink().append(MdNode(type="html", text=token.content, markdown=token.content))
        elif kind == "image":
            alt = token.content or _plain_text(_inline_nodes(token.children or []))
            src = str(token.attrGet("src") or "")
            title = token.attrGet("title")
            sink().append(
                MdNode(
                    type="image",
                    text=alt,
                    markdown=f"![{alt}]({src})",
                    url=src,
                    title=str(title) if title else None,
                )
            )
        elif kind in {"link_open", "strong_open", "em_open"}:
            draft = _Draft(type={"link_open": "link", "strong_open": "strong", "em_open": "emphasis"}[kind])
            if kind == "link_open":
                draft.url = str(token.attrGet("href") or "")
                title = token.attrGet("title")
                draft.title = str(title) if title else None
            stack.append((draft, []))
        elif kind in {"link_close", "strong_close", "em_close"} and stack:
            draft, children = stack.pop()
            frozen_children = tuple(children)
            inner_markdown = "".join(child.markdown for child in frozen_children)
            if draft.type == "link":
                markdown = f"[{inner_markdown}]({draft.url})"
            elif draft.type == "strong":
                markdown = f"**{inner_markdown}**"
            else:
                markdown = f"*{inner_markdown}*"
            sink().append(
                MdNode(
                    type=draft.type,
                    text=_plain_text(frozen_children),
                    markdown=markdown,
                    url=draft.url,
                    title=draft.title,
                    children=frozen_children,
                )
            )

    # Unbalanced inline tokens: keep their children rather than dropping text.
    while stack:
        _draft, children = stack.pop()
        sink().extend(children)
    return root


def parse_markdown(text: str) -> tuple[MdNode, ...]:
    """Parse ``text`` into a tuple of top-level block nodes."""
    md = MarkdownIt("commonmark").enable("table")
    tokens = md.parse(text)
    lines = text.splitlines()

    root: list[MdNode] = []
    stack: list[_Draft] = []
    list_depth = 0

    def sink() -> list[MdNode]:
        return stack[-1].children if stack else root

    for token in tokens:
        kind = token.type
        if kind in _TRANSPARENT_OPEN_TYPES or kind in _TRANSPARENT_CLOSE_TYPES:
            continue
        if token.nesting == 1:
            node_type = _BLOCK_OPEN_TYPES.get(kind, kind.removesuffix("_open"))
            draft = _Draft(type=node_type, token=token)
            if node_type == "heading":
                draft.depth = int(token.tag[1:]) if token.tag[1:].isdigit() else 1
            elif node_type == "list":
                list_depth += 1
                draft.depth = list_depth
                draft.ordered = kind == "ordered_list_open"
            stack.append(draft)
            continue
        if token.nesting == -1:
            if not stack:
                continue
            draft = stack.pop()
            if draft.type == "list":
                list_depth = max(0, list_depth - 1)
            children = tuple(draft.children)
            markdown, line = _source_slice(lines, draft.token)
            separator = "\n" if draft.type in {"list", "blockquote", "item", "table"} else ""
            if draft.type == "row":
                separator = " | "
            if draft.type in {"row", "cell"} and not markdown:
                markdown = _plain_text(children, separator)
            sink().append(
                MdNode(
                    type=draft.type,
                    text=draft.text if draft.text is not None else _plain_text(children, separator),
                    markdown=markdown,
                    depth=draft.depth,
                    ordered=draft.ordered,
                    line=line,
                    children=children,
                )
            )
            continue

        if kind == "inline":
            sink().extend(_inline_nodes(token.children or []))
        elif kind in {"fence", "code_block"}:
            markdown, line = _source_slice(lines, token)
            info = token.info.strip().split()[0] if token.info.strip() else None
            sink().append(
                MdNode(
                    type="code",
                    text=token.content.rstrip("\n"),
                    markdown=markdown,
                    lang=info,
                    line=line,
                )
            )
        elif kind == "hr":
            markdown, line = _source_slice(lines, token)
            sink().append(MdNode(type="hr", markdown=markdown or "---", line=line))
        elif kind == "html_block":
            markdown, line = _source_slice(lines, token)
            sink().append(
                MdNode(type="html", text=token.content.rstrip("\n"), markdown=markdown, line=line)
            )

    return tuple(root)


@dataclass(frozen=True)
class Document:
    """Loaded Markdown source, immutable for the lifetime of the process."""

    raw_text: str
    filename: str
    nodes: tuple[MdNode, ...] = field(init=False, repr=False, compare=False)
    lines: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", parse_markdown(self.raw_text))
        object.__setattr__(self, "lines", tuple(self.raw_text.splitlines()) or ("",))
        logger.debug(
            "Parsed %s: %d chars, %d top-level nodes",
            self.filename,
            len(self.raw_text),
            len(self.nodes),
        )


def read_text(path: Path) -> str:
    """Read text using tolerant encoding fallback order.

    Attempts UTF-8, UTF-8 with BOM, then latin-1; as a final fallback decodes
    raw bytes with UTF-8 replacement semantics.
    """
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def load_document(path: Path) -> Document:
    """Load ``path`` into a ``Document`` or raise ``StartupError``."""
    if not path.exists():
        raise StartupError(f"File not found: {path}")
    if path.is_dir():
        raise StartupError(f"Not a file: {path}")
    try:
        content = read_text(path)
    except OSError as exc:
        raise StartupError(f"Cannot read {path}: {exc.strerror or exc}") from exc
    logger.info("Loaded %s (%d bytes)", path, len(content))
    return Document(content, path.name or "file.md")


def load_document_from_stream(stream: IO[str], filename: str = DEFAULT_STDIN_FILENAME) -> Document:
    """Read piped input into a ``Document``."""
    try:
        content = stream.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise StartupError(f"Cannot read standard input: {exc}") from exc
    logger.info("Loaded %d chars from standard input", len(content))
    return Document(content, filename)
