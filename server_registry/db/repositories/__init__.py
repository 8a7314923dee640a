"""
Per-domain repository modules for database access.
"""
