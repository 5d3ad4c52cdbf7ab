"""Small shared helpers (catalog path building, export names)."""
