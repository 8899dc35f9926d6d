"""Time-bounded access revocation backed by a catalog of reusable reasons."""

__version__ = "1.0.0"
