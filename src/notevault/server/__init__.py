"""MCP presentation layer for NoteVault."""
