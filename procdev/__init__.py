"""procdev: run the processes of a Procfile.dev with multiplexed, color-tagged output."""

__version__ = "0.1.0"
