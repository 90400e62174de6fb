"""
Entry point for Content Studio.
Delegates to content_studio.main.
"""
import sys
import os

# Add the current directory to python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from content_studio.main import main

if __name__ == "__main__":
    sys.exit(main())
