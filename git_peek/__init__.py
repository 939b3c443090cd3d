"""
git-peek - keep an eye on the status of your local Git repositories
"""

from .__version__ import __version__
from .core import GitPeek

__all__ = ["GitPeek", "__version__"]
