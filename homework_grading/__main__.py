"""python -m homework_grading"""

import sys

from homework_grading.server import main

sys.exit(main())
