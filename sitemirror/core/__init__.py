"""Core functionality"""
from .path_mapper import resolve_local_path
from .reconcile import Decision, ReconcileSummary, decide, reconcile
from .ssh_manager import SSHManager

__all__ = ["resolve_local_path", "Decision", "ReconcileSummary", "decide", "reconcile",
           "SSHManager"]
