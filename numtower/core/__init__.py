"""
Core infrastructure: configuration, errors and logging.
"""
