# hostaudit/__main__.py
import sys

from hostaudit.cli import main

if __name__ == "__main__":
    sys.exit(main())
