"""clawtop - One-screen OpenClaw health board"""

__version__ = "0.1.0"

# Data model
from ._types import (
    BoardCards,
    BoardSnapshot,
    BoardWarning,
    Metric,
    OverallCard,
    StatusLevel,
    WarningSeverity,
    first_known,
    known_metric,
    unknown_metric,
)
from .config import BoardConfig, load_config
from .openclaw import OpenClawClient
from .render import RenderOptions, render_board, render_error_state, render_loading_state
from .status import SnapshotCollector, collect_board_snapshot, derive_overall_card

__all__ = [
    # Version
    "__version__",

    # Data model
    "BoardCards",
    "BoardSnapshot",
    "BoardWarning",
    "Metric",
    "OverallCard",
    "StatusLevel",
    "WarningSeverity",
    "first_known",
    "known_metric",
    "unknown_metric",

    # Configuration
    "BoardConfig",
    "load_config",

    # Collection
    "OpenClawClient",
    "SnapshotCollector",
    "collect_board_snapshot",
    "derive_overall_card",

    # Rendering
    "RenderOptions",
    "render_board",
    "render_error_state",
    "render_loading_state",
]
