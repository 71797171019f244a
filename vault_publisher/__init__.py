"""
Vault Publisher - branch / pull request publishing workflow for GitHub repositories.
"""

__version__ = "0.1.0"
