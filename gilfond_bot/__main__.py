import sys

# Russian page text in logs must never crash the run
try:
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")
except AttributeError:
    pass

from .runner import main

sys.exit(main())
