"""SelfPatch: behavioral analytics engine for self-improvement tracking."""

__version__ = "0.1.0"
