from ivrmap.discovery.graph_merger import merge_transcript
from ivrmap.discovery.loop import DiscoveryLoop, DiscoveryResult, StopReason
from ivrmap.discovery.option_parser import ParsedOption, parse_options
from ivrmap.discovery.planner import collect_paths, is_complete, next_path
from ivrmap.discovery.state_machine import DiscoveryState, DiscoveryStateMachine, DiscoveryTrigger
from ivrmap.discovery.tree_render import RenderOptions, render_tree_as_text

__all__ = [
    "DiscoveryLoop",
    "DiscoveryResult",
    "DiscoveryState",
    "DiscoveryStateMachine",
    "DiscoveryTrigger",
    "ParsedOption",
    "RenderOptions",
    "StopReason",
    "collect_paths",
    "is_complete",
    "merge_transcript",
    "next_path",
    "parse_options",
    "render_tree_as_text",
]
