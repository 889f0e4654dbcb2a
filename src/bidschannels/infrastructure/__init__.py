"""
Infrastructure layer package.

This package contains modules for interacting with the outside world:
- Configuration file loading
- Parser CSV loading
- Logging configuration
- Path utilities
"""
