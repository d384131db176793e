from .build import command_build, command_generate
from .inspect import command_check, command_list_units

__all__ = [
    "command_build",
    "command_check",
    "command_generate",
    "command_list_units",
]
