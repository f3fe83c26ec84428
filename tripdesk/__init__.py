# Trip Desk: reconciliation front for poultry trading trips
import os
import sys


def get_base_dir() -> str:
    """Return the base directory for the app.

    When running from source: returns the project root (parent of tripdesk/).
    When running from a PyInstaller bundle: returns the temp _MEIPASS dir.
    """
    if getattr(sys, "frozen", False):
        return sys._MEIPASS
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


BASE_DIR = get_base_dir()
