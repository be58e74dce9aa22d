"""Core data models and loaders for site reports."""
