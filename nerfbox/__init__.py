"""Train a small NumPy neural radiance field on turntable views and preview its renders."""

__version__ = "0.1.0"