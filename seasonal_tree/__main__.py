from seasonal_tree.app import main

raise SystemExit(main())
