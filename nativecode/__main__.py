import sys

from .dispatcher import main

sys.exit(main())
