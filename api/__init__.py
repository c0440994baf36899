"""
SQL Guard API
=============

HTTP surface for the SQL safety pipeline.
"""

__version__ = "0.1.0"
