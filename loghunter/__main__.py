import sys

from loghunter.cli import main

sys.exit(main())
