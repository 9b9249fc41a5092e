"""Allow ``python -m chessref``."""

from chessref.app import main

raise SystemExit(main())
