"""Value engine: odds resolution, fair pricing and bet recommendations."""

__version__ = "0.1.0"
