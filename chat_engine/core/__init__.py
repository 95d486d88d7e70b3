"""Core domain: error taxonomy and the agentic conversation loop."""
