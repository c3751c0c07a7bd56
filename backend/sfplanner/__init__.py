"""
Object resolution and schema-aware query planning.
"""

__version__ = "1.0.0"
