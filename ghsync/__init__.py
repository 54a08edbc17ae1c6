"""
ghsync - GitHub Repositories Mirror Sync
A tool to mirror GitHub organizations, users and repositories into local directories
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
]
