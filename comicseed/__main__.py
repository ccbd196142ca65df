from comicseed.cli import main

raise SystemExit(main())
