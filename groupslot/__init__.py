"""
groupslot - find shared meeting slots for a group and import shifts from
recognized schedule text.
"""

__version__ = "0.1.0"
