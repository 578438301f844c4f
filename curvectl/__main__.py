"""Allow ``python -m curvectl``."""

from .cli import main

if __name__ == "__main__":
    main()
