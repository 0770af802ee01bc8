"""
DocFlow Bootstrap — Wiring
==========================
Builds the full service graph for one data directory.
"""

from core.bootstrap.wiring import DocFlowServices, build_services

__all__ = [
    "DocFlowServices",
    "build_services",
]
