import sys

from boxexport.cli import main

sys.exit(main())
