"""Event definitions for simulation runs."""

from enum import Enum
from typing import Dict, Any, List, Optional
from dataclasses import asdict, dataclass, field
from datetime import datetime
import threading


class SimulationEventType(str, Enum):
    """Types of simulation events."""
    # Build events
    BUILD_STARTED = "build_started"
    BUILD_COMPLETED = "build_completed"
    BUILD_FAILED = "build_failed"

    # Step events
    STEP_BUILT = "step_built"
    STEP_SOLVED = "step_solved"
    STEP_FAILED = "step_failed"
    INITIAL_CONDITIONS_UPDATED = "initial_conditions_updated"
    RESULTS_PERSISTED = "results_persisted"

    # Run events
    EXECUTION_STARTED = "execution_started"
    SIMULATION_COMPLETED = "simulation_completed"
    SIMULATION_FAILED = "simulation_failed"


@dataclass
class SimulationEvent:
    """Base event class."""
    type: SimulationEventType
    timestamp: datetime
    step: Optional[int] = None
    model: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationEvent":
        return cls(
            type=SimulationEventType(data["type"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            step=data.get("step"),
            model=data.get("model"),
            details=dict(data.get("details") or {}),
        )


class EventRecorder:
    """Append-only, thread-safe list of events for one run."""

    def __init__(self):
        self._events: List[SimulationEvent] = []
        self._lock = threading.Lock()

    def record(self, event_type: SimulationEventType, step: Optional[int] = None,
               model: Optional[str] = None, **details) -> SimulationEvent:
        event = SimulationEvent(event_type, datetime.now(), step, model, details)
        with self._lock:
            self._events.append(event)
        return event

    @property
    def events(self) -> List[SimulationEvent]:
        with self._lock:
            return list(self._events)

    def filter(self, event_type: SimulationEventType) -> List[SimulationEvent]:
        return [e for e in self.events if e.type == event_type]
