import sys

from riverdash.cli import main

sys.exit(main())
