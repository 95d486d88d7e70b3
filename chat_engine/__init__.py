"""Chat engine: conversation session orchestration service."""
