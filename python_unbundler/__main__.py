"""Allow ``python -m python_unbundler``."""

from python_unbundler.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
