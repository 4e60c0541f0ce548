"""python-unbundler.

A small launcher that extracts the artifacts embedded in its resource bundle,
verifies them by SHA-256, and runs the bundled entry point on its own thread.
"""

__all__: list[str] = ["__version__"]

__version__: str = "0.1.0"
