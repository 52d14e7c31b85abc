"""KMFGen package

Converts flattened 3D scenes into KMF model files and parses KMF files back
into the same in-memory representation.

Prefer importing the programmatic entry points from :mod:`kmfgen.api` and the
command line from :mod:`kmfgen.cli`.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
