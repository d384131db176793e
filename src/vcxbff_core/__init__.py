from .core import *  # noqa: F401,F403
from .commands import (
    command_build,
    command_check,
    command_generate,
    command_list_units,
)
from .cli import build_parser, main
