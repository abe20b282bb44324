"""Allow running git-dch as ``python -m git_dch``."""

from git_dch.cli.app import main

if __name__ == "__main__":
    main()
