import sys

from pi.readline.cli import main

sys.exit(main())
