"""Service layer for NoteVault."""
