"""Vyapar offline sync server: queued mutations, conflict detection and resolution."""

__version__ = "0.1.0"
