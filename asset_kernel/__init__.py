"""
Asset Kernel - school IT asset inventory core

Persistence and rules for tenant-scoped asset records:
- Identifier allocation (asset tags and management tags)
- Field-level change history
- Verified, all-or-nothing tenant purges
"""

__version__ = "0.1.0"
