"""Course chat between students and instructors."""

__version__ = "1.0.0"
