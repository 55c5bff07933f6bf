"""
Module: config
Description: Package initialization for service configuration.

- settings: pydantic-settings model and the global settings instance
"""

__all__ = []
