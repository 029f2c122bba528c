"""Deal pipeline state machine and per-deal coordination."""

from dealdesk.pipeline.ids import DealIdGenerator
from dealdesk.pipeline.locks import DealLockRegistry
from dealdesk.pipeline.machine import (
    PIPELINE_ORDER,
    TERMINAL_STATUSES,
    DealPipeline,
    allowed_targets,
)
