"""Parsing of free-text chat instructions into structured modification intents."""
