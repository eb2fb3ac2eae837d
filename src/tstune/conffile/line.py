"""Line model for postgresql.conf contents."""

from dataclasses import dataclass


@dataclass
class ConfigLine:
    """A single line of a config file.

    Attributes:
        content: Raw text of the line, without the line terminator
        remove: Soft-delete flag, honored only when the file is written
    """

    content: str
    remove: bool = False
