from discogs_watcher.cli import main

raise SystemExit(main())
