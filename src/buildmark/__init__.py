"""Build report engine.

Resolves the version range of a build from repository tags and turns the
pull requests and issues in that range into categorized changes, bug fixes
and known issues.
"""

__version__ = "0.1.0"
