"""Topology and settings loading."""

from .loader import AppSpec, Topology, find_topology_file, load_topology, parse_topology
from .settings import DevplexerSettings, load_settings

__all__ = [
    "AppSpec",
    "DevplexerSettings",
    "Topology",
    "find_topology_file",
    "load_settings",
    "load_topology",
    "parse_topology",
]
