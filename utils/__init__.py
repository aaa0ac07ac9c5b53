"""
Shared utilities: logging, exceptions and error handling
"""
