"""Core domain logic package.

This package contains the pure grouping logic: entity and file models,
configuration analysis, suffix mapping and channel assembly.
Modules here must not read configuration files or touch settings.
"""
