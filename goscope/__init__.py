"""goscope: architecture map, hotspots and dependency graphs for Go codebases."""

__version__ = "1.0.0"
