"""CLI entry point - wrapper around the cli package"""

from cli.main import main

if __name__ == "__main__":
    main()
