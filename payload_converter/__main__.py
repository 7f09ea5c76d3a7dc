"""Package entry point for ``python -m payload_converter``.

Delegates to the CLI; ``--serve`` runs the HTTP service instead of a
conversion.
"""

from payload_converter.cli import main

if __name__ == "__main__":
    main()
