import sys

from ununity.cli import main

sys.exit(main())
