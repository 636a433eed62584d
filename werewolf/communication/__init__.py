"""Communication channels and logging."""

from .channels import Channel, ChannelManager, Message, PrivateChannel, PublicChannel, Visibility
from .markdown_logger import MarkdownLogger

__all__ = [
    "Channel",
    "ChannelManager",
    "Message",
    "PrivateChannel",
    "PublicChannel",
    "Visibility",
    "MarkdownLogger",
]
