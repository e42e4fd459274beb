"""TutorHub backend: class lifecycle, evaluations and teacher reports."""

__version__ = "1.0.0"
