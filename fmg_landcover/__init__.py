"""
Land-cover classification and farmland allocation for fantasy map meshes.
"""

__version__ = "0.1.0"
