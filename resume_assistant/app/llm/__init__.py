"""LLM-backed implementations of parsing, classification and planning."""
