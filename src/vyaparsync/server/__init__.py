"""Server module - REST API, persistence and the offline sync subsystem."""
