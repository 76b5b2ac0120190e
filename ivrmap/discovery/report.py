"""
Coverage statistics for a discovery session.

Summarizes how much of the menu has been mapped (nodes, resolved vs pending
options, depth) alongside call count and spend, and formats it as a
human-readable report for the CLI and the console demo.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ivrmap.discovery.planner import collect_paths
from ivrmap.schemas.session_schema import Session
from ivrmap.schemas.tree_schema import Node, iter_nodes

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryStats:
    """Calculated coverage for one session."""

    node_count: int = 0
    option_count: int = 0
    resolved_paths: int = 0
    pending_paths: int = 0
    max_depth: int = 0
    coverage_rate: float = 0.0
    call_count: int = 0
    total_cost: float = 0.0

    @property
    def is_complete(self) -> bool:
        return self.node_count > 0 and self.pending_paths == 0


def calculate_stats(root: Optional[Node], call_count: int = 0, total_cost: float = 0.0) -> DiscoveryStats:
    stats = DiscoveryStats(call_count=call_count, total_cost=total_cost)
    if root is None:
        return stats

    nodes = list(iter_nodes(root))
    visited, pending = collect_paths(root)
    stats.node_count = len(nodes)
    stats.option_count = sum(len(n.options) for n in nodes)
    stats.resolved_paths = len(visited)
    stats.pending_paths = len(pending)
    stats.max_depth = max(len(n.path) for n in nodes)
    explored = stats.resolved_paths + stats.pending_paths
    stats.coverage_rate = stats.resolved_paths / explored if explored else 0.0
    return stats


def calculate_session_stats(session: Session) -> DiscoveryStats:
    return calculate_stats(session.last_root, len(session.calls), session.total_cost)


def format_report(stats: DiscoveryStats, title: str = "IVR DISCOVERY REPORT") -> str:
    """Format stats into a human-readable report."""
    status = "COMPLETE" if stats.is_complete else "IN PROGRESS"
    lines = [
        "=" * 60,
        title,
        "=" * 60,
        "",
        "COVERAGE",
        f"  Status:                 {status}",
        f"  Nodes discovered:       {stats.node_count}",
        f"  Options discovered:     {stats.option_count}",
        f"  Resolved paths:         {stats.resolved_paths}",
        f"  Pending paths:          {stats.pending_paths}",
        f"  Coverage rate:          {stats.coverage_rate:.1%}",
        f"  Max depth:              {stats.max_depth}",
        "",
        "COST",
        f"  Calls placed:           {stats.call_count}",
        f"  Total cost:             ${stats.total_cost:.2f}",
        "=" * 60,
    ]
    return "\n".join(lines)
