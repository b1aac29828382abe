import sys
import os

# Inject the comment-engine directory into sys.path
# This ensures all sub-packages (discussion, signatures, matching, ...) are resolvable.
sys.path.append(os.path.join(os.path.dirname(__file__), "comment-engine"))

from discussion.cli import main

if __name__ == "__main__":
    sys.exit(main())
