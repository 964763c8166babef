#!/usr/bin/env python3
"""
Setup Script

Installs hook dependencies, registers the plugin marketplace and installs
every plugin listed in config/plugins.yaml. Run with --help for options.

Exit code: 0 = completed (failed plugins are reported as warnings),
           1 = a prerequisite step failed
"""

import sys
from pathlib import Path

# Add lib directory to path
lib_dir = Path(__file__).parent.parent / "lib"
sys.path.insert(0, str(lib_dir))

from cli import main


if __name__ == "__main__":
    sys.exit(main())
