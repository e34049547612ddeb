"""
Run the EPG admin CLI as `python -m ghostguide import schedule.csv --policy skip`.
"""

from ghostguide.cli import main

if __name__ == "__main__":
    main()
