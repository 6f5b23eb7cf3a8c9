import os
import sys

# Tests import the package as `src.keygrad`; anchor the repository root.
ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
