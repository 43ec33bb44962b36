from .main import main

raise SystemExit(main())  # pragma: no cover
