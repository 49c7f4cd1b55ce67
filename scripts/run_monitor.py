#!/usr/bin/env python3
"""
Run the call tree monitor TUI against a simulated stream of function calls.

Usage:
    python -m scripts.run_monitor [--mode live|headless] [--calls N] [--config <path>]

Keyboard shortcuts:
    tab                 Switch between the Functions and Logs tabs
    t                   Resume tail-follow
    arrows/pgup/pgdn    Scroll (disables tail-follow)
    ctrl+u/ctrl+d       Scroll half a page
    q/ctrl+c/esc        Quit
"""
import sys
from pathlib import Path

# Add the repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from calltree.runner import main


if __name__ == "__main__":
    sys.exit(main())
