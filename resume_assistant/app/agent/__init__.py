"""The agent orchestrator and its collaborators."""
