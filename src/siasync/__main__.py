"""Allow ``python -m siasync``."""

from siasync.cli import main

if __name__ == "__main__":
    main()
