"""libdeps - shared library dependency resolver built on top of ldd."""

__version__ = "0.1.0"
