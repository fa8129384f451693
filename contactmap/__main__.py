from contactmap.ui.cli import main

raise SystemExit(main())
