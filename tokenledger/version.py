"""
Version of the tokenledger package.

Bump this when making a release; use semver (MAJOR.MINOR.PATCH).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
