"""Allow running as ``python -m manifested``."""

from .cli import main

if __name__ == "__main__":
    main()
