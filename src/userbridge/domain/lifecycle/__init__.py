"""Account lifecycle operations spanning both stores."""

from __future__ import annotations

from .coordinator import AccountLifecycle
from .saga import SagaRecord, SagaSink, StepOutcome, log_saga

__all__ = ["AccountLifecycle", "SagaRecord", "SagaSink", "StepOutcome", "log_saga"]
