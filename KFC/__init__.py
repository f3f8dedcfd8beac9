"""
KFC - Kubernetes Follow Console

Follow a deployment's live logs in the terminal with filtering, pausing
and background error collection.
"""

__version__ = "0.1.0"
