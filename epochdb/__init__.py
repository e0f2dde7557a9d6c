"""Size encoding, checkpoint files, controller console, hash index and commit buffer for an epoch-based database node."""

__version__ = "0.1.0"