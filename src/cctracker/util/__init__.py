"""
Utility functions and helpers for cctracker.

- **logger.py**: Centralized logging configuration with colored console output,
  per-session log files, and suppression of noisy library loggers (Discord
  internals, aiohttp, websockets). Uses prompt_toolkit for console output.
"""
