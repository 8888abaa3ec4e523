"""Utility modules for process execution and text handling."""
