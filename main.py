"""
Household Planner — Entry Point.

`python main.py` starts the headless watcher.
"""

from planner.runner import main

if __name__ == "__main__":
    main()
