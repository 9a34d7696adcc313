"""
Sage Backend Package
====================

Flask-based backend for the Sage classroom writing platform.

Structure:
- routes/: API route blueprints
- services/: Text heuristics, AI assistant, exports, email
- storage.py: Memory and Supabase storage backends
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
