"""Lay out team roadmaps on a 120-column yearly grid."""

__version__ = "0.1.0"
