"""Environment configuration for the log governance app."""
