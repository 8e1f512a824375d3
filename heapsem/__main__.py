"""Allow ``python -m heapsem``."""

from heapsem.main import main

raise SystemExit(main())
