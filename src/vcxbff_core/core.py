from __future__ import annotations

from ._core_base import *  # noqa: F401,F403
from ._core_adapter import *  # noqa: F401,F403
from ._core_synth import *  # noqa: F401,F403
from ._core_graph import *  # noqa: F401,F403
from ._core_solution import *  # noqa: F401,F403
from ._core_batch import *  # noqa: F401,F403
from ._core_link import *  # noqa: F401,F403
from ._core_fingerprint import *  # noqa: F401,F403
from ._core_toolchain import *  # noqa: F401,F403
from ._core_render import *  # noqa: F401,F403
from ._core_engine import *  # noqa: F401,F403
from ._core_settings import *  # noqa: F401,F403
from ._core_orchestration import *  # noqa: F401,F403
