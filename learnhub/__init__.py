"""LearnHub: courses, progress tracking and communities API."""

__version__ = "0.1.0"
