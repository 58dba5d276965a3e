"""
Football Journal Backend Application Package
"""

__version__ = "1.0.0"
__app_name__ = "Football Journal Backend"
