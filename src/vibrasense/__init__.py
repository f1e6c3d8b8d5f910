"""vibrasense - Rescue telemetry ingestion and live state reconciliation."""

from importlib.metadata import PackageNotFoundError, version

from vibrasense.config import SimulationProfile, VibrasenseConfig
from vibrasense.engine import IngestionEngine, IngestionStats
from vibrasense.exceptions import (
    MissingRequiredFieldError,
    RecordError,
    TransportError,
    VibrasenseConfigError,
    VibrasenseError,
)
from vibrasense.ingestion.classify import classify
from vibrasense.ingestion.parse import parse_line
from vibrasense.models import (
    ContactState,
    ProximityLink,
    Rescuee,
    RescueeRecord,
    Rescuer,
    RescuerRecord,
    RescuerStatus,
    UnknownRecord,
)
from vibrasense.state.alerts import AlertKind, evaluate_alerts
from vibrasense.state.snapshot import Snapshot, SnapshotEmitter
from vibrasense.state.store import StateStore

try:
    __version__ = version("vibrasense")
except PackageNotFoundError:
    __version__ = "0+local"

__all__ = [
    "__version__",
    "AlertKind",
    "ContactState",
    "IngestionEngine",
    "IngestionStats",
    "MissingRequiredFieldError",
    "ProximityLink",
    "RecordError",
    "Rescuee",
    "RescueeRecord",
    "Rescuer",
    "RescuerRecord",
    "RescuerStatus",
    "SimulationProfile",
    "Snapshot",
    "SnapshotEmitter",
    "StateStore",
    "TransportError",
    "UnknownRecord",
    "VibrasenseConfig",
    "VibrasenseConfigError",
    "VibrasenseError",
    "classify",
    "evaluate_alerts",
    "parse_line",
]
