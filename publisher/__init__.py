"""Publishing module: markdown documents to Notion pages."""

from .blocks import Block, CodeBlock, Heading, ListItem, Paragraph, markdown_to_blocks, split_title
from .notion import NotionPublisher, PublishedPage

__all__ = [
    # Document blocks
    "Block",
    "CodeBlock",
    "Heading",
    "ListItem",
    "Paragraph",
    "markdown_to_blocks",
    "split_title",
    # Notion
    "NotionPublisher",
    "PublishedPage",
]
