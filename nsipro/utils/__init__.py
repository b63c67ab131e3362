"""Utility functions used in potentially multiple places by nsipro.

Functions are organized into the following submodules:

- logging: Logger configuration
- dicts: Dictionary manipulation utilities
- files: File finding utilities
- time: Timestamp parsing utilities
"""
