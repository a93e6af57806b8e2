"""HTTP API for the resume assistant."""
