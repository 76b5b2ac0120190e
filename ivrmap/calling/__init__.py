from ivrmap.calling.client import BlandClient
from ivrmap.calling.orchestrator import CallOrchestrator, CallProvider
from ivrmap.calling.simulator import SimulatedIVR
from ivrmap.calling.transcript import normalize_entries, parse_concatenated_transcript

__all__ = [
    "BlandClient",
    "CallOrchestrator",
    "CallProvider",
    "SimulatedIVR",
    "normalize_entries",
    "parse_concatenated_transcript",
]
