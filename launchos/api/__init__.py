"""API layer for LaunchOS."""
