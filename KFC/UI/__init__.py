"""
KFC UI Package - Textual front end
"""

from .app import KFCApp, run_app

__all__ = ['KFCApp', 'run_app']
