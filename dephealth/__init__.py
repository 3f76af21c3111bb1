"""dephealth — dependency health insights for GitHub repositories.

Reports, for every package a repository's package.json declares, the
latest npm version, license and deprecation status, with a summary.
"""

__version__ = "0.1.0"
