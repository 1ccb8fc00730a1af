"""Allow running as `python -m cynthia_plugin_runtime`."""

from .cli import main

if __name__ == "__main__":
    main()
