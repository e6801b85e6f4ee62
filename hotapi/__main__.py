from hotapi.cli import main

raise SystemExit(main())
