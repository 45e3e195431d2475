"""
Configuration management for cctracker.

- **app_configuration.py**: YAML configuration loader for global settings.
  Provides the C&C polling interval, fetch timeout, forum API endpoint, thread
  URL base, prefix label overrides, and the database path. Falls back to
  defaults on a missing or malformed file.
"""
