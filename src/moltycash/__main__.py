import sys

from moltycash.cli import main

sys.exit(main())
