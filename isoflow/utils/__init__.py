"""Drawing surface and export helpers."""
