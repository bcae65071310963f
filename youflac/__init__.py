"""Match music videos to lossless audio, track downloads in a queue, name output files and handle lyrics."""

__version__ = "0.1.0"