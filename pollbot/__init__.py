"""Mattermost poll bot with polls and votes stored in Tarantool."""

__version__ = "0.1.0"
__all__ = ["__version__"]