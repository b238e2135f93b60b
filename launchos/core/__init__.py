"""Core functionality for LaunchOS."""
