"""Per-user undo/redo history timeline."""
