"""
Entry point for VAMDC Discovery CLI when run as a module.

This allows the package to be run with:
python -m vamdc_discovery
"""

from vamdc_discovery import main

if __name__ == "__main__":
    main()
