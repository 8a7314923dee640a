"""
Service layer: version resolution and registry operations.
"""
