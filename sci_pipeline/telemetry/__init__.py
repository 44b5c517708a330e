from .logger import (
    TaskMetrics,
    AbstractTelemetryLogger,
    StandardTelemetryLogger,
)

__all__ = ["TaskMetrics", "AbstractTelemetryLogger", "StandardTelemetryLogger"]
