import sys

from unifier.cli import main

sys.exit(main())
