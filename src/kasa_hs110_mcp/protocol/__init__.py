"""Protocol layer: autokey framing, command builders, and response parsing."""

from .framing import build_frame, parse_frame, read_frame
from .commands import CommandSpec, Module, build_command
