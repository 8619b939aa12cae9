"""Find downloadable media formats behind links to social platforms."""

__version__ = "0.1.0"