import sys

from peakinvestigator.presentation.cli import main

sys.exit(main())
