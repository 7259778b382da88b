from cststypegen.cli import main

raise SystemExit(main())
