"""Allow ``python -m stepflow``."""

from .cli import main

if __name__ == "__main__":
    main()
