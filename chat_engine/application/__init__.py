"""Application layer: conversation use cases."""
