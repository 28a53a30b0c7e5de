"""Non-destructive image adjustment and rendering pipeline."""

__version__ = "1.0.0"
