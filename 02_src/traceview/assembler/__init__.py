"""Action timeline assembly."""

from .assembler import UNPAIRED_ACTION_NAME, ActionAssembler

__all__ = ["ActionAssembler", "UNPAIRED_ACTION_NAME"]
